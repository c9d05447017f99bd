"""
Syntax helpers - tree-sitter parsing for JavaScript and TypeScript modules.

Wraps grammar selection, parsing and the small node utilities the story
transforms share (string literal decoding, argument lists, identifier
collection, byte-range text access).
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePath
from typing import Iterator, List, Optional, Set

import structlog
import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

logger = structlog.get_logger()


# File extension -> grammar name
GRAMMAR_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

DEFAULT_GRAMMAR = "javascript"

REFERENCE_TYPES = (
    "identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "type_identifier",
)

_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


@lru_cache
def get_language(name: str) -> Language:
    """Get the tree-sitter language for a grammar name."""
    if name == "javascript":
        return Language(tree_sitter_javascript.language())
    if name == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if name == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    raise ValueError(f"Unknown grammar: {name}")


def grammar_for_path(path: str) -> str:
    """Pick a grammar from a file path, defaulting to JavaScript."""
    return GRAMMAR_BY_EXTENSION.get(PurePath(path).suffix.lower(), DEFAULT_GRAMMAR)


@dataclass
class ParsedModule:
    """A parsed source module: the tree plus the bytes it was parsed from."""

    source: bytes
    tree: Tree
    grammar: str

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.tree.root_node.has_error

    def text(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8")

    def line_indent(self, node: Node) -> str:
        """Leading whitespace of the line a node starts on."""
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        prefix = self.source[line_start:node.start_byte]
        indent = prefix[: len(prefix) - len(prefix.lstrip())]
        return indent.decode("utf-8")

    def statements(self) -> List[Node]:
        """Top-level statements, comments excluded."""
        return [child for child in self.root.named_children if child.type != "comment"]


class JSParser:
    """
    Parses JavaScript/TypeScript source text with tree-sitter.

    The grammar is chosen from the file extension unless one is forced
    with ``grammar``.
    """

    def __init__(self, grammar: Optional[str] = None):
        self.grammar = grammar

    def grammar_for(self, path: str) -> str:
        return self.grammar or grammar_for_path(path)

    def parse(self, source_code: str, path: str = "") -> ParsedModule:
        grammar = self.grammar_for(path)
        parser = Parser(get_language(grammar))
        source = source_code.encode("utf-8")
        tree = parser.parse(source)
        logger.debug("source_parsed", path=path, grammar=grammar, size=len(source))
        return ParsedModule(source=source, tree=tree, grammar=grammar)


def walk(node: Node) -> Iterator[Node]:
    """Depth-first, left-to-right traversal of a subtree."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def call_arguments(call: Node) -> List[Node]:
    """Argument expressions of a call, comments excluded."""
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [arg for arg in arguments.named_children if arg.type != "comment"]


def is_string(node: Optional[Node]) -> bool:
    return node is not None and node.type == "string"


def string_value(node: Node) -> str:
    """
    Decode a string literal node to its runtime value.

    Escaped surrogate pairs (``'\\uD83C\\uDF89'``) are combined into one
    character; an unpaired surrogate is kept as is.
    """
    parts = []
    for child in node.named_children:
        raw = child.text.decode("utf-8")
        if child.type == "escape_sequence":
            parts.append(_decode_escape(raw))
        else:
            parts.append(raw)
    return "".join(parts).encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def _decode_escape(raw: str) -> str:
    body = raw[1:]
    if body.startswith("u{"):
        return chr(int(body[2:-1], 16))
    if body.startswith("u") and len(body) == 5:
        return chr(int(body[1:], 16))
    if body.startswith("x") and len(body) == 3:
        return chr(int(body[1:], 16))
    if body.startswith(("\n", "\r")):
        # line continuation
        return ""
    return _ESCAPES.get(body, body)


def property_key(node: Node) -> Optional[str]:
    """
    Static key of an object member, or None when it has none.

    Handles ``key: value`` pairs, shorthand properties and methods.
    Spreads and computed keys have no static key.
    """
    if node.type == "shorthand_property_identifier":
        return node.text.decode("utf-8")
    if node.type in ("pair", "method_definition"):
        key = node.child_by_field_name("key") or node.child_by_field_name("name")
        if key is None:
            return None
        if key.type == "string":
            return string_value(key)
        if key.type in ("property_identifier", "number", "private_property_identifier"):
            return key.text.decode("utf-8")
    return None


def collect_identifiers(root: Node) -> Set[str]:
    """
    Every name bound or referenced anywhere in a tree. Property names
    (``obj.name``, object keys, JSX attribute names) are not included.
    """
    names = set()
    for node in walk(root):
        if node.type in REFERENCE_TYPES:
            names.add(node.text.decode("utf-8"))
    return names


def contains_multiline_literal(node: Node) -> bool:
    """True when a string or template literal in the subtree spans lines."""
    for child in walk(node):
        if child.type in ("string", "template_string") and b"\n" in child.text:
            return True
    return False
