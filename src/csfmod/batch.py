"""
Batch driver - run the storiesOf migration over many files.

Each file is read, transformed and optionally written back on its own;
a failure in one file is recorded in its report and never stops the
others. Files are processed in a thread pool since no file's result
depends on another's.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

import structlog

from csfmod.config import TransformOptions
from csfmod.state.models import BatchReport, FileReport, FileStatus
from csfmod.tools.file_ops import create_backup, generate_diff, read_file, write_file
from csfmod.transforms.base import TransformError
from csfmod.transforms.storiesof import convert_storiesof

logger = structlog.get_logger()


def migrate_file(
    path: str,
    options: Optional[TransformOptions] = None,
    write: bool = False,
    backup: bool = False,
) -> FileReport:
    """
    Migrate one file and report the outcome.

    Args:
        path: File to migrate
        options: Transform options
        write: Write the rewritten source back to ``path``
        backup: Keep a ``.bak`` copy of the original before writing

    Returns:
        FileReport; the status is FAILED rather than raising on errors
    """
    report = FileReport(path=path)
    structlog.contextvars.bind_contextvars(path=path)
    try:
        source = read_file(path)
        result = convert_storiesof(source, path=path, options=options)

        report.diagnostics = result.diagnostics
        report.changes_made = result.changes_made
        report.change_descriptions = result.change_descriptions

        if result.has_changes:
            report.status = FileStatus.CONVERTED
            report.diff = generate_diff(source, result.modified_code, path)
            if write:
                if backup:
                    create_backup(path)
                write_file(path, result.modified_code)
                report.written = True
        elif result.diagnostics:
            report.status = FileStatus.SKIPPED
        else:
            report.status = FileStatus.UNCHANGED

    except TransformError as e:
        report.status = FileStatus.FAILED
        report.error_message = str(e)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("file_unreadable", error=str(e))
        report.status = FileStatus.FAILED
        report.error_message = str(e)
    except Exception as e:
        logger.exception("migration_crashed", error=str(e))
        report.status = FileStatus.FAILED
        report.error_message = f"{type(e).__name__}: {e}"
    finally:
        structlog.contextvars.unbind_contextvars("path")

    return report


def run_batch(
    paths: Iterable[str],
    options: Optional[TransformOptions] = None,
    write: bool = False,
    backup: bool = False,
    workers: int = 4,
) -> BatchReport:
    """
    Migrate many files concurrently.

    Args:
        paths: Files to migrate
        options: Transform options shared by every file
        write: Write converted files back
        backup: Keep ``.bak`` copies of written files
        workers: Number of worker threads

    Returns:
        BatchReport with one FileReport per path, in input order
    """
    paths = list(paths)
    logger.info("batch_started", files=len(paths), workers=workers, write=write)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        reports = list(
            executor.map(
                lambda path: migrate_file(path, options=options, write=write, backup=backup),
                paths,
            )
        )

    report = BatchReport(files=reports)
    logger.info(
        "batch_finished",
        converted=len(report.converted),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report
