"""
Pattern locator - find legacy storiesOf chains and a module's exports.

A chain starts at a call of the legacy registration function with a
string-literal title and continues through ``.add``, ``.addDecorator``
and ``.addParameters`` calls. The locator is read-only: it describes
what it finds and leaves all rewriting to the transformer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog
from tree_sitter import Node

from csfmod.transforms.syntax import (
    ParsedModule,
    call_arguments,
    is_string,
    string_value,
    walk,
)

logger = structlog.get_logger()


ADD = "add"
ADD_DECORATOR = "addDecorator"
ADD_PARAMETERS = "addParameters"
CHAIN_METHODS = (ADD, ADD_DECORATOR, ADD_PARAMETERS)

DECLARATION_TYPES = ("lexical_declaration", "variable_declaration")


@dataclass
class ChainLink:
    """One ``.method(...)`` call of a chain."""

    method: str
    call: Node
    arguments: List[Node]
    property_node: Optional[Node] = None
    comments: List[Node] = field(default_factory=list)

    @property
    def is_well_formed(self) -> bool:
        if self.method not in CHAIN_METHODS:
            return False
        if any(arg.type == "spread_element" for arg in self.arguments):
            return False
        if self.method == ADD:
            return len(self.arguments) >= 2 and is_string(self.arguments[0])
        return len(self.arguments) == 1


@dataclass
class ChainFragment:
    """
    The top-level statements holding one storiesOf chain.

    ``statements`` are excised from the module; the replacement is
    written where ``anchor`` (the last of them) stood.
    """

    root: Node
    title: str
    links: List[ChainLink]
    statements: List[Node]
    binding: Optional[str] = None

    @property
    def anchor(self) -> Node:
        return self.statements[-1]

    @property
    def adds(self) -> List[ChainLink]:
        return [link for link in self.links if link.method == ADD]

    @property
    def decorators(self) -> List[ChainLink]:
        return [link for link in self.links if link.method == ADD_DECORATOR]

    @property
    def parameters(self) -> List[ChainLink]:
        return [link for link in self.links if link.method == ADD_PARAMETERS]


@dataclass
class ExportSurface:
    """The module's existing exports."""

    has_default: bool = False
    named: List[str] = field(default_factory=list)


@dataclass
class LocatorResult:
    legacy_name: str
    legacy_import: Optional[Node]
    roots: List[Node]
    fragments: List[ChainFragment]
    exports: ExportSurface

    @property
    def unsupported(self) -> List[Node]:
        """Chain roots no supported fragment accounts for."""
        covered = {fragment.root.start_byte for fragment in self.fragments}
        return [root for root in self.roots if root.start_byte not in covered]


class StoriesOfLocator:
    """
    Finds storiesOf chains in a parsed module.

    Args:
        module: The parsed module
        legacy_function_name: Exported name of the registration function
        legacy_package_prefix: Import source prefix the function comes from
    """

    def __init__(
        self,
        module: ParsedModule,
        legacy_function_name: str = "storiesOf",
        legacy_package_prefix: str = "@storybook/",
    ):
        self.module = module
        self.legacy_function_name = legacy_function_name
        self.legacy_package_prefix = legacy_package_prefix
        self.legacy_import: Optional[Node] = None
        self.legacy_name = legacy_function_name

    def locate(self) -> LocatorResult:
        self._resolve_legacy_name()
        roots = [node for node in walk(self.module.root) if self._is_root(node)]
        fragments = self._find_fragments() if roots else []
        result = LocatorResult(
            legacy_name=self.legacy_name,
            legacy_import=self.legacy_import,
            roots=roots,
            fragments=fragments,
            exports=find_exports(self.module),
        )
        logger.debug(
            "chains_located",
            roots=len(roots),
            fragments=len(fragments),
            legacy_name=self.legacy_name,
        )
        return result

    def _resolve_legacy_name(self):
        """Follow ``import { storiesOf as alias }`` to the local name."""
        for specifier in self._legacy_specifiers():
            alias = specifier.child_by_field_name("alias")
            if alias is not None:
                self.legacy_name = self.module.text(alias)
            self.legacy_import = specifier
            return

    def _legacy_specifiers(self) -> List[Node]:
        specifiers = []
        for statement in self.module.statements():
            if statement.type != "import_statement":
                continue
            source = statement.child_by_field_name("source")
            if source is None or not string_value(source).startswith(self.legacy_package_prefix):
                continue
            for node in walk(statement):
                if node.type != "import_specifier":
                    continue
                name = node.child_by_field_name("name")
                if name is not None and self._imported_name(name) == self.legacy_function_name:
                    specifiers.append(node)
        return specifiers

    def _imported_name(self, name: Node) -> str:
        return string_value(name) if name.type == "string" else self.module.text(name)

    def _is_root(self, node: Node) -> bool:
        if node.type != "call_expression":
            return False
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "identifier":
            return False
        if self.module.text(callee) != self.legacy_name:
            return False
        arguments = call_arguments(node)
        return bool(arguments) and is_string(arguments[0])

    def _unwind(self, node: Node, links: List[ChainLink]) -> Optional[Node]:
        """
        Walk a call chain from its base outwards, appending links in
        source order. Returns the base (a root call or an identifier),
        or None when the expression is not a chain.
        """
        if self._is_root(node) or node.type == "identifier":
            return node
        if node.type != "call_expression":
            return None
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return None
        base = self._unwind(callee.child_by_field_name("object"), links)
        if base is None:
            return None
        prop = callee.child_by_field_name("property")
        links.append(
            ChainLink(
                method=self.module.text(prop),
                call=node,
                arguments=call_arguments(node),
                property_node=prop,
            )
        )
        return base

    def _statement_chain(self, statement: Node):
        """(base, links, binding) of a top-level statement, or None."""
        if statement.type == "expression_statement":
            expression = _first_named(statement)
            binding = None
        elif statement.type in DECLARATION_TYPES:
            declarators = [
                child for child in statement.named_children if child.type == "variable_declarator"
            ]
            if len(declarators) != 1:
                return None
            name = declarators[0].child_by_field_name("name")
            expression = declarators[0].child_by_field_name("value")
            binding = self.module.text(name) if name is not None and name.type == "identifier" else None
        else:
            return None
        if expression is None:
            return None
        links: List[ChainLink] = []
        base = self._unwind(expression, links)
        if base is None:
            return None
        return base, links, binding

    def _find_fragments(self) -> List[ChainFragment]:
        fragments = []
        open_bindings: Dict[str, ChainFragment] = {}
        for statement in self.module.statements():
            chain = self._statement_chain(statement)
            if chain is None:
                continue
            base, links, binding = chain
            if base.type == "identifier":
                fragment = open_bindings.get(self.module.text(base))
                if fragment is not None and statement.type == "expression_statement":
                    fragment.links.extend(links)
                    fragment.statements.append(statement)
                continue
            fragment = ChainFragment(
                root=base,
                title=string_value(call_arguments(base)[0]),
                links=links,
                statements=[statement],
                binding=binding,
            )
            if binding is not None:
                open_bindings[binding] = fragment
            fragments.append(fragment)
        for fragment in fragments:
            _attach_comments(fragment)
        return [fragment for fragment in fragments if self._is_supported(fragment)]

    def _is_supported(self, fragment: ChainFragment) -> bool:
        if not all(link.is_well_formed for link in fragment.links):
            logger.debug("malformed_chain_link", title=fragment.title)
            return False
        if fragment.binding is None:
            return True
        # every use of the binding must belong to the fragment itself
        uses = sum(
            1
            for node in walk(self.module.root)
            if node.type in ("identifier", "shorthand_property_identifier")
            and self.module.text(node) == fragment.binding
        )
        return uses == len(fragment.statements)


def _attach_comments(fragment: ChainFragment):
    """
    Give each comment written between chain links to the link it
    precedes. Comments inside call arguments stay with their argument.
    """
    if not fragment.links:
        return
    spans = [(arg.start_byte, arg.end_byte) for link in fragment.links for arg in link.arguments]
    root_arguments = fragment.root.child_by_field_name("arguments")
    if root_arguments is not None:
        spans.append((root_arguments.start_byte, root_arguments.end_byte))

    for statement in fragment.statements:
        for node in walk(statement):
            if node.type != "comment":
                continue
            if any(start <= node.start_byte < end for start, end in spans):
                continue
            following = (
                link for link in fragment.links if link.property_node.start_byte > node.start_byte
            )
            target = next(following, fragment.links[-1])
            target.comments.append(node)


def _first_named(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def find_exports(module: ParsedModule) -> ExportSurface:
    """
    Collect the module's export surface.

    Named exports include declared variables (destructured patterns
    included), functions, classes, enums and ``export { a as b }``
    specifiers. ``export { x as default }`` counts as a default export.
    """
    surface = ExportSurface()
    for statement in module.statements():
        if statement.type != "export_statement":
            continue
        if any(child.type == "default" for child in statement.children):
            surface.has_default = True
            continue
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            surface.named.extend(_declared_names(module, declaration))
            continue
        for node in statement.named_children:
            if node.type != "export_clause":
                continue
            for specifier in node.named_children:
                if specifier.type != "export_specifier":
                    continue
                exported = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                name = string_value(exported) if exported.type == "string" else module.text(exported)
                if name == "default":
                    surface.has_default = True
                else:
                    surface.named.append(name)
    return surface


def _declared_names(module: ParsedModule, declaration: Node) -> List[str]:
    if declaration.type in DECLARATION_TYPES:
        names = []
        for declarator in declaration.named_children:
            if declarator.type == "variable_declarator":
                names.extend(_pattern_names(module, declarator.child_by_field_name("name")))
        return names
    if declaration.type in (
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "enum_declaration",
    ):
        name = declaration.child_by_field_name("name")
        return [module.text(name)] if name is not None else []
    # type-only declarations (interfaces, type aliases) export nothing at runtime
    return []


def _pattern_names(module: ParsedModule, pattern: Optional[Node]) -> List[str]:
    """Names bound by a declarator's left-hand side."""
    if pattern is None:
        return []
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [module.text(pattern)]
    if pattern.type == "pair_pattern":
        return _pattern_names(module, pattern.child_by_field_name("value"))
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        return _pattern_names(module, pattern.child_by_field_name("left"))
    names = []
    if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in pattern.named_children:
            names.extend(_pattern_names(module, child))
    return names
