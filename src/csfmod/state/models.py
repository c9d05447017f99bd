"""
Pydantic models for csfmod state.

These models describe the files handed to the transforms, the warnings the
transforms raise about them, and the per-file outcome of a batch run.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(str, Enum):
    """Outcome of migrating a single file."""

    PENDING = "PENDING"
    CONVERTED = "CONVERTED"
    UNCHANGED = "UNCHANGED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


class DiagnosticKind(str, Enum):
    """Reasons a transform declined to rewrite a file."""

    DEFAULT_EXPORT_CONFLICT = "DEFAULT_EXPORT_CONFLICT"
    MULTIPLE_CHAINS = "MULTIPLE_CHAINS"
    UNSUPPORTED_SHAPE = "UNSUPPORTED_SHAPE"


class SourceFile(BaseModel):
    """A file descriptor handed to a transform: where it lives and its text."""

    path: str = Field(..., description="Path of the file, used in diagnostics")
    source: str = Field(..., description="Full source text of the file")


class Diagnostic(BaseModel):
    """
    A non-fatal warning raised while transforming one file.

    The file it refers to is returned unchanged.
    """

    kind: DiagnosticKind = Field(..., description="Why the file was skipped")
    path: str = Field(..., description="File the warning refers to")
    message: str = Field(..., description="Human readable warning line")
    chain_count: int = Field(default=0, description="Number of chain roots found")

    model_config = ConfigDict(use_enum_values=True)

    def __str__(self) -> str:
        return self.message


class FileReport(BaseModel):
    """
    Result of running the migration over one file in a batch.

    Tracks status, the warnings raised, a diff of the change and the
    error message when the file failed.
    """

    path: str = Field(..., description="Path of the file")
    status: FileStatus = Field(default=FileStatus.PENDING, description="Migration outcome")
    diagnostics: List[Diagnostic] = Field(
        default_factory=list, description="Warnings raised for this file"
    )
    changes_made: int = Field(default=0, description="Number of recorded changes")
    change_descriptions: List[str] = Field(
        default_factory=list, description="Descriptions of recorded changes"
    )
    diff: Optional[str] = Field(default=None, description="Unified diff of the rewrite")
    error_message: Optional[str] = Field(
        default=None, description="Error message if status is FAILED"
    )
    written: bool = Field(default=False, description="Whether the result was written back")
    last_updated: datetime = Field(
        default_factory=datetime.now, description="Timestamp of last update"
    )

    model_config = ConfigDict(use_enum_values=True)


class BatchReport(BaseModel):
    """Aggregated outcome of a batch run, file reports in input order."""

    files: List[FileReport] = Field(default_factory=list)

    def with_status(self, status: FileStatus) -> List[FileReport]:
        return [report for report in self.files if report.status == status.value]

    @property
    def converted(self) -> List[FileReport]:
        return self.with_status(FileStatus.CONVERTED)

    @property
    def skipped(self) -> List[FileReport]:
        return self.with_status(FileStatus.SKIPPED)

    @property
    def failed(self) -> List[FileReport]:
        return self.with_status(FileStatus.FAILED)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [diag for report in self.files for diag in report.diagnostics]

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)
