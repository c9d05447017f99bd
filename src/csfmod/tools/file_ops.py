"""
File system operations for csfmod.

Provides reading, writing and discovery of candidate story files, plus
backups and diffs for reviewing a migration before it is written.
"""

import difflib
from pathlib import Path
from typing import Iterable, List, Optional

import structlog

logger = structlog.get_logger()


DEFAULT_EXCLUDES = ["node_modules", ".git", "dist", "build", "storybook-static"]


def read_file(filepath: str) -> str:
    """
    Read the contents of a file.

    Args:
        filepath: Absolute or relative path to the file

    Returns:
        The file contents as a string
    """
    path = Path(filepath)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    if not path.is_file():
        raise ValueError(f"Path is not a file: {filepath}")

    content = path.read_text(encoding="utf-8")
    logger.debug("file_read", filepath=filepath, size=len(content))
    return content


def write_file(filepath: str, content: str) -> str:
    """
    Write content to an existing or new file.

    Args:
        filepath: Path to the file
        content: Content to write

    Returns:
        The path written to
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("file_written", filepath=filepath, size=len(content))
    return str(path)


def list_files(
    directory: str,
    patterns: Iterable[str],
    recursive: bool = True,
    exclude_patterns: Optional[List[str]] = None,
) -> List[str]:
    """
    List files in a directory matching any of the glob patterns.

    Args:
        directory: Path to the directory to search
        patterns: Glob patterns to match (e.g. ["*.stories.tsx"])
        recursive: If True, search subdirectories recursively
        exclude_patterns: Path parts to exclude (default: node_modules, .git, ...)

    Returns:
        Sorted, de-duplicated list of matching file paths
    """
    path = Path(directory)
    exclude_patterns = DEFAULT_EXCLUDES if exclude_patterns is None else exclude_patterns

    if not path.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")

    if not path.is_dir():
        raise ValueError(f"Path is not a directory: {directory}")

    found = set()
    for pattern in patterns:
        matches = path.rglob(pattern) if recursive else path.glob(pattern)
        for match in matches:
            if not match.is_file():
                continue
            if any(part in exclude_patterns for part in match.relative_to(path).parts):
                continue
            found.add(str(match))

    result = sorted(found)
    logger.info("files_listed", directory=directory, count=len(result))
    return result


def expand_paths(
    paths: Iterable[str],
    patterns: Iterable[str],
    exclude_patterns: Optional[List[str]] = None,
) -> List[str]:
    """
    Expand a mix of files and directories into candidate files.

    Files are kept as given; directories are searched with ``patterns``.
    """
    patterns = list(patterns)
    result: List[str] = []
    seen = set()
    for entry in paths:
        path = Path(entry)
        if path.is_dir():
            candidates = list_files(entry, patterns, exclude_patterns=exclude_patterns)
        elif path.is_file():
            candidates = [str(path)]
        else:
            raise FileNotFoundError(f"Path not found: {entry}")
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                result.append(candidate)
    return result


def create_backup(filepath: str) -> str:
    """
    Create a backup of a file before modifying it.

    Args:
        filepath: Path to the file to backup

    Returns:
        Path to the backup file
    """
    path = Path(filepath)
    backup_path = path.with_suffix(path.suffix + ".bak")

    if path.exists():
        content = path.read_text(encoding="utf-8")
        backup_path.write_text(content, encoding="utf-8")
        logger.info("backup_created", original=filepath, backup=str(backup_path))

    return str(backup_path)


def generate_diff(original: str, modified: str, filepath: str = "file") -> str:
    """
    Generate a unified diff between original and modified content.

    Args:
        original: Original file content
        modified: Modified file content
        filepath: Filename for diff header

    Returns:
        Unified diff string
    """
    original_lines = original.splitlines(keepends=True)
    modified_lines = modified.splitlines(keepends=True)

    diff = difflib.unified_diff(
        original_lines,
        modified_lines,
        fromfile=f"a/{filepath}",
        tofile=f"b/{filepath}",
    )

    return "".join(diff)
