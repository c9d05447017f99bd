"""
Transformer Base - Common utilities for source transformers.

Provides base classes and utilities for building tree-sitter based
transformers that rewrite JavaScript/TypeScript modules by splicing
text edits into the original source, leaving untouched code and
comments byte-for-byte intact.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from csfmod.state.models import Diagnostic, DiagnosticKind
from csfmod.transforms.syntax import JSParser, ParsedModule

logger = structlog.get_logger()


class TransformError(Exception):
    """Base class for fatal, per-file transform errors."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ParseFailure(TransformError):
    """The input could not be parsed as valid source."""


class EmitFailure(TransformError):
    """The rewritten output does not parse."""


@dataclass
class TransformResult:
    """Result of a code transformation."""

    original_code: str
    modified_code: str
    changes_made: int = 0
    change_descriptions: list = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.original_code != self.modified_code

    @property
    def skipped(self) -> bool:
        return bool(self.diagnostics) and not self.has_changes


# (start_byte, end_byte, replacement)
Edit = Tuple[int, int, str]


def apply_edits(source: bytes, edits: List[Edit]) -> str:
    """Splice non-overlapping byte-range edits into source."""
    result = source
    last_start = len(source) + 1
    for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        if end > last_start:
            raise ValueError(f"Overlapping edits at byte {start}")
        result = result[:start] + replacement.encode("utf-8") + result[end:]
        last_start = start
    return result.decode("utf-8")


class BaseTransformer(ABC):
    """
    Base class for all csfmod transformers.

    Provides change tracking and the per-file diagnostics channel.
    Subclasses implement ``transform`` which receives a parsed module
    and returns the new source text.
    """

    def __init__(self, path: str = "<unknown>"):
        self.path = path
        self.changes_made = 0
        self.change_descriptions = []
        self.diagnostics: List[Diagnostic] = []

    def record_change(self, description: str):
        """Record a change made by the transformer."""
        self.changes_made += 1
        self.change_descriptions.append(description)
        logger.debug("change_recorded", description=description, path=self.path)

    def warn(self, kind: DiagnosticKind, message: str, chain_count: int = 0):
        """Record a skip warning for the current file."""
        diagnostic = Diagnostic(
            kind=kind, path=self.path, message=message, chain_count=chain_count
        )
        self.diagnostics.append(diagnostic)
        logger.warning(
            "transform_skipped",
            transformer=self.get_transformer_name(),
            kind=kind.value,
            path=self.path,
        )

    @abstractmethod
    def get_transformer_name(self) -> str:
        """Return the name of this transformer."""
        pass

    @abstractmethod
    def transform(self, module: ParsedModule) -> str:
        """Return the transformed source text of a parsed module."""
        pass


def parse_module(
    source_code: str,
    path: str = "",
    parser: Optional[JSParser] = None,
) -> ParsedModule:
    """
    Parse source code, raising ParseFailure on syntax errors.

    Args:
        source_code: JavaScript/TypeScript source code
        path: File path, used to pick the grammar and in errors
        parser: Parser to use, one picking grammars by extension by default

    Returns:
        Parsed module
    """
    parser = parser or JSParser()
    module = parser.parse(source_code, path)
    if module.has_errors:
        logger.warning("parse_failed", path=path, grammar=module.grammar)
        raise ParseFailure(f"Could not parse {path or 'source'} as {module.grammar}", path)
    return module


def apply_transformer(
    source_code: str,
    transformer: BaseTransformer,
    parser: Optional[JSParser] = None,
) -> TransformResult:
    """
    Apply a transformer to source code.

    Args:
        source_code: Source code to transform
        transformer: Configured transformer instance
        parser: Parser to use for both the input and the output check

    Returns:
        TransformResult with original, modified code and change info

    Raises:
        ParseFailure: If the input does not parse
        EmitFailure: If the rewritten output does not parse
    """
    path = transformer.path
    try:
        module = parse_module(source_code, path, parser)

        modified_code = transformer.transform(module)

        if modified_code != source_code:
            check = (parser or JSParser()).parse(modified_code, path)
            if check.has_errors:
                raise EmitFailure(f"Rewritten {path} does not parse", path)

        return TransformResult(
            original_code=source_code,
            modified_code=modified_code,
            changes_made=transformer.changes_made,
            change_descriptions=transformer.change_descriptions,
            diagnostics=transformer.diagnostics,
        )

    except Exception as e:
        logger.error(
            "transform_failed",
            transformer=transformer.get_transformer_name(),
            path=path,
            error=str(e),
        )
        raise
