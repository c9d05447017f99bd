"""
Code Cleanup - import pruning, residual text cleanup and formatting.

Provides:
- Removing the legacy storiesOf import once nothing references it
- Stripping a leftover ``const x = storiesOf(`` line from printed source
- Normalizing and optionally prettier-formatting the final text
"""

import re
from typing import List, Optional, Tuple

import structlog
from tree_sitter import Node

from csfmod.tools.subprocess_runner import run_formatter
from csfmod.transforms.base import BaseTransformer, Edit, TransformResult, apply_edits, apply_transformer
from csfmod.transforms.locator import StoriesOfLocator
from csfmod.transforms.syntax import JSParser, ParsedModule, walk

logger = structlog.get_logger()


def statement_span(
    module: ParsedModule, node: Node, absorb_blank_lines: bool = False
) -> Tuple[int, int]:
    """
    Byte span removing a statement together with its line when the
    statement is alone on it, and optionally the blank lines after it.
    """
    source = module.source
    start, end = node.start_byte, node.end_byte
    line_start = source.rfind(b"\n", 0, start) + 1
    if not source[line_start:start].strip():
        start = line_start
    line_end = source.find(b"\n", end)
    if line_end == -1:
        line_end = len(source)
    if not source[end:line_end].strip():
        end = min(line_end + 1, len(source))
        while absorb_blank_lines and end < len(source):
            next_end = source.find(b"\n", end)
            if next_end == -1 or source[end:next_end].strip():
                break
            end = next_end + 1
    return start, end


def remove_statement(module: ParsedModule, node: Node, absorb_blank_lines: bool = False) -> Edit:
    start, end = statement_span(module, node, absorb_blank_lines)
    return start, end, ""


def import_removal_edit(module: ParsedModule, specifier: Node) -> Edit:
    """
    Edit removing one import specifier.

    The whole import statement goes when the specifier is its only
    binding; otherwise just the specifier and its separating comma.
    """
    named_imports = specifier.parent
    clause = named_imports.parent
    statement = clause.parent
    specifiers = [c for c in named_imports.named_children if c.type == "import_specifier"]
    if len(specifiers) > 1:
        index = specifiers.index(specifier)
        if index < len(specifiers) - 1:
            return specifier.start_byte, specifiers[index + 1].start_byte, ""
        return specifiers[index - 1].end_byte, specifier.end_byte, ""

    parts = [c for c in clause.named_children if c.type != "comment"]
    if len(parts) > 1:
        # import Default, { storiesOf } from '...'
        index = parts.index(named_imports)
        if index > 0:
            return parts[index - 1].end_byte, named_imports.end_byte, ""
        return named_imports.start_byte, parts[index + 1].start_byte, ""

    return remove_statement(module, statement)


def count_references(module: ParsedModule, name: str, exclude: List[Node]) -> int:
    """Identifier occurrences of ``name`` outside the excluded subtrees."""
    spans = [(node.start_byte, node.end_byte) for node in exclude]
    count = 0
    for node in walk(module.root):
        if node.type not in ("identifier", "shorthand_property_identifier"):
            continue
        if module.text(node) != name:
            continue
        if any(start <= node.start_byte and node.end_byte <= end for start, end in spans):
            continue
        count += 1
    return count


def enclosing_import(node: Node) -> Node:
    while node.type != "import_statement":
        node = node.parent
    return node


# Node types whose text is data rather than code
LITERAL_TYPES = ("string", "template_string", "comment", "jsx_text")


def strip_residual_roots(
    source_code: str,
    legacy_name: str = "storiesOf",
    parser: Optional[JSParser] = None,
) -> str:
    """
    Drop a leftover ``const <name> = storiesOf(`` line.

    AST-level excision removes chain declarations whole, so this only
    acts on text some other step left behind. Lines inside string,
    template or JSX text and comments are story content and are kept.
    """
    pattern = re.compile(
        rb"^[ \t]*(?:const|let|var)[ \t]+[\w$]+[ \t]*=[ \t]*"
        + re.escape(legacy_name.encode("utf-8"))
        + rb"\(.*(?:\n|$)",
        re.MULTILINE,
    )
    source = source_code.encode("utf-8")
    matches = list(pattern.finditer(source))
    if not matches:
        return source_code

    module = (parser or JSParser()).parse(source_code)
    literals = [
        (node.start_byte, node.end_byte)
        for node in walk(module.root)
        if node.type in LITERAL_TYPES
    ]
    edits = [
        (match.start(), match.end(), "")
        for match in matches
        if not any(start <= _keyword_start(match) < end for start, end in literals)
    ]
    if not edits:
        return source_code
    logger.warning("residual_root_stripped", count=len(edits))
    return apply_edits(source, edits)


def _keyword_start(match) -> int:
    line = match.group()
    return match.start() + len(line) - len(line.lstrip())


def prettify(
    source_code: str,
    path: str = "",
    command: Optional[List[str]] = None,
    quote_style: str = "single",
    trailing_comma: bool = True,
    tab_width: int = 2,
    timeout: int = 30,
) -> str:
    """
    Normalize the ends of the file and run the external formatter if one
    is configured. A formatter failure keeps the unformatted text.

    A CRLF file keeps CRLF line endings.
    """
    newline = "\r\n" if "\r\n" in source_code else "\n"
    text = source_code.strip("\r\n") + newline
    if not command:
        return text

    result = run_formatter(
        command,
        text,
        path,
        quote_style=quote_style,
        trailing_comma=trailing_comma,
        tab_width=tab_width,
        timeout=timeout,
    )
    if result.success and result.stdout:
        return result.stdout

    logger.warning(
        "formatter_failed",
        path=path,
        exit_code=result.exit_code,
        stderr=result.stderr[:500],
    )
    return text


class RemoveLegacyImportTransformer(BaseTransformer):
    """
    Transformer that removes the legacy storiesOf import when nothing
    in the module references it any more.
    """

    def __init__(
        self,
        path: str = "<unknown>",
        legacy_function_name: str = "storiesOf",
        legacy_package_prefix: str = "@storybook/",
    ):
        super().__init__(path)
        self.legacy_function_name = legacy_function_name
        self.legacy_package_prefix = legacy_package_prefix

    def get_transformer_name(self) -> str:
        return "RemoveLegacyImport"

    def transform(self, module: ParsedModule) -> str:
        locator = StoriesOfLocator(
            module, self.legacy_function_name, self.legacy_package_prefix
        )
        located = locator.locate()
        specifier = located.legacy_import
        if specifier is None:
            return module.source.decode("utf-8")

        statement = enclosing_import(specifier)
        if count_references(module, located.legacy_name, [statement]):
            return module.source.decode("utf-8")

        self.record_change(f"Removed unused import of '{self.legacy_function_name}'")
        return apply_edits(module.source, [import_removal_edit(module, specifier)])


def remove_legacy_import(source_code: str, path: str = "<unknown>", **kwargs) -> TransformResult:
    """Remove an unused legacy storiesOf import from source code."""
    transformer = RemoveLegacyImportTransformer(path=path, **kwargs)
    return apply_transformer(source_code, transformer)
