"""Tools module initialization."""

from csfmod.tools.file_ops import (
    create_backup,
    expand_paths,
    generate_diff,
    list_files,
    read_file,
    write_file,
)
from csfmod.tools.subprocess_runner import CommandResult, run_command, run_formatter

__all__ = [
    "read_file",
    "write_file",
    "list_files",
    "expand_paths",
    "create_backup",
    "generate_diff",
    "run_command",
    "run_formatter",
    "CommandResult",
]
