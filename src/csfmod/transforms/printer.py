"""
Code printer - emit JavaScript for generated declarations.

Generated statements mix freshly written syntax (object and array
literals, string keys, export declarations) with expressions copied
verbatim from the original module. The printer applies the configured
quote style, trailing-comma policy and indentation width to the former
and re-indents the latter so they sit at their new nesting level.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from tree_sitter import Node

from csfmod.transforms.syntax import ParsedModule, contains_multiline_literal

_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


@dataclass
class Entry:
    """One member of a printed object or array literal."""

    text: str
    is_comment: bool = False


class CodePrinter:
    """
    Prints literals and copied expressions for one module.

    Args:
        module: The module copied expressions come from
        quote_style: 'single' or 'double'
        trailing_comma: Add a trailing comma after the last member of
            multi-line literals
        tab_width: Spaces per indentation level
    """

    def __init__(
        self,
        module: ParsedModule,
        quote_style: str = "single",
        trailing_comma: bool = True,
        tab_width: int = 2,
    ):
        self.module = module
        self.quote = "'" if quote_style == "single" else '"'
        self.trailing_comma = trailing_comma
        self.tab_width = tab_width
        self.newline = "\r\n" if b"\r\n" in module.source else "\n"

    def with_newlines(self, text: str) -> str:
        """Use the module's line ending throughout generated text."""
        return text.replace("\r\n", "\n").replace("\n", self.newline)

    def indent(self, level: int) -> str:
        return " " * (self.tab_width * level)

    def string(self, value: str) -> str:
        escaped = (
            value.replace("\\", "\\\\")
            .replace(self.quote, "\\" + self.quote)
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
            .replace("\u2028", "\\u2028")
            .replace("\u2029", "\\u2029")
        )
        escaped = _LONE_SURROGATE.sub(lambda match: "\\u%04x" % ord(match.group()), escaped)
        return f"{self.quote}{escaped}{self.quote}"

    def node(self, node: Node, level: int) -> str:
        """
        Source text of a node, continuation lines moved to ``level``.

        Text holding multi-line string or template literals is copied
        unchanged since re-indenting would alter their values.
        """
        text = self.module.text(node)
        if "\n" not in text or contains_multiline_literal(node):
            return text
        base = self.module.line_indent(node)
        indent = self.indent(level)
        lines = text.split("\n")
        moved = [lines[0]]
        for line in lines[1:]:
            if not line.strip():
                moved.append("")
                continue
            if line.startswith(base):
                line = line[len(base):]
            else:
                line = line.lstrip()
            moved.append(indent + line)
        return "\n".join(moved)

    def property(self, key: str, value: str) -> str:
        return f"{key}: {value}"

    def object(self, entries: List[Union[Entry, str]], level: int) -> str:
        """Multi-line object literal whose members sit at ``level + 1``."""
        if not entries:
            return "{}"
        return self._block("{", "}", entries, level)

    def array(self, items: List[str], level: int) -> str:
        """Array literal, inline unless a member spans lines."""
        if not any("\n" in item for item in items):
            return "[" + ", ".join(items) + "]"
        return self._block("[", "]", items, level)

    def _block(self, opener: str, closer: str, entries: List[Union[Entry, str]], level: int) -> str:
        entries = [_as_entry(entry) for entry in entries]
        inner = self.indent(level + 1)
        members = [i for i, entry in enumerate(entries) if not entry.is_comment]
        last_member = members[-1] if members else -1
        lines = []
        for index, entry in enumerate(entries):
            if entry.is_comment:
                lines.append(f"{inner}{entry.text}")
                continue
            comma = "," if index != last_member or self.trailing_comma else ""
            lines.append(f"{inner}{entry.text}{comma}")
        return opener + "\n" + "\n".join(lines) + "\n" + self.indent(level) + closer

    def statement(self, text: str, comments: Optional[List[str]] = None) -> str:
        lines = list(comments or [])
        lines.append(text if text.endswith(";") else f"{text};")
        return "\n".join(lines)


def _as_entry(entry: Union[Entry, str]) -> Entry:
    return entry if isinstance(entry, Entry) else Entry(entry)
