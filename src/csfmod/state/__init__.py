"""State module initialization."""

from csfmod.state.models import (
    BatchReport,
    Diagnostic,
    DiagnosticKind,
    FileReport,
    FileStatus,
    SourceFile,
)

__all__ = [
    "BatchReport",
    "Diagnostic",
    "DiagnosticKind",
    "FileReport",
    "FileStatus",
    "SourceFile",
]
