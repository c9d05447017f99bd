"""CLI application for migrating storiesOf stories to CSF."""

import shlex
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from csfmod.batch import run_batch
from csfmod.config import TransformOptions, get_settings
from csfmod.logging_config import setup_logging
from csfmod.state.models import BatchReport
from csfmod.tools.file_ops import expand_paths
from csfmod.transforms.registry import list_available_transformers

app = typer.Typer(
    name="csfmod",
    help="Migrate storiesOf story modules to Component Story Format",
    no_args_is_help=True,
)
console = Console()


@app.command()
def migrate(
    paths: List[Path] = typer.Argument(..., help="Story files or directories to migrate"),
    glob: Optional[List[str]] = typer.Option(
        None, "--glob", "-g", help="Glob pattern for files inside directories (repeatable)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Report without writing files"),
    show_diff: bool = typer.Option(False, "--diff", help="Print a diff of every converted file"),
    backup: bool = typer.Option(False, "--backup", help="Keep a .bak copy of rewritten files"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Parallel workers"),
    quote: Optional[str] = typer.Option(None, "--quote", help="Quote style: single or double"),
    tab_width: Optional[int] = typer.Option(None, "--tab-width", help="Indentation width"),
    trailing_comma: Optional[bool] = typer.Option(
        None, "--trailing-comma/--no-trailing-comma", help="Trailing commas in multi-line literals"
    ),
    preserve_names: Optional[bool] = typer.Option(
        None, "--preserve-names/--drop-names", help="Keep story names the export name cannot reproduce"
    ),
    prettier: Optional[str] = typer.Option(
        None, "--prettier", help="Formatter command to pipe results through, e.g. 'npx prettier'"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """Rewrite storiesOf chains into default and named exports."""
    settings = get_settings()
    setup_logging(level="DEBUG" if verbose else settings.log_level, json_logs=settings.json_logs)

    if quote is not None and quote not in ("single", "double"):
        console.print(f"[red]Invalid quote style: {quote}[/red]")
        raise typer.Exit(2)

    overrides = {
        "quote_style": quote,
        "tab_width": tab_width,
        "trailing_comma": trailing_comma,
        "preserve_story_names": preserve_names,
    }
    if prettier is not None:
        overrides["prettier_command"] = shlex.split(prettier)
    options = TransformOptions.from_settings(settings, **overrides)

    try:
        files = expand_paths([str(path) for path in paths], glob or settings.story_patterns)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    if not files:
        console.print("[yellow]No story files found.[/yellow]")
        raise typer.Exit(0)

    report = run_batch(
        files,
        options=options,
        write=not dry_run,
        backup=backup,
        workers=workers or settings.max_workers,
    )

    if show_diff:
        for file_report in report.converted:
            console.print(Syntax(file_report.diff or "", "diff", theme="ansi_dark"))

    _print_report(report, dry_run)

    if report.has_failures:
        raise typer.Exit(1)


@app.command()
def transforms():
    """List the available transforms."""
    for name in list_available_transformers():
        console.print(name)


def _print_report(report: BatchReport, dry_run: bool):
    if report.diagnostics or report.failed:
        table = Table(title="Needs attention")
        table.add_column("File", style="cyan")
        table.add_column("Kind", style="yellow")
        table.add_column("Message")
        for diagnostic in report.diagnostics:
            table.add_row(diagnostic.path, str(diagnostic.kind), diagnostic.message)
        for failed in report.failed:
            table.add_row(failed.path, "[red]FAILED[/red]", failed.error_message or "")
        console.print(table)

    verb = "would convert" if dry_run else "converted"
    console.print(
        f"[green]{len(report.converted)} {verb}[/green], "
        f"[yellow]{len(report.skipped)} skipped[/yellow], "
        f"[red]{len(report.failed)} failed[/red], "
        f"{len(report.files)} files total"
    )


if __name__ == "__main__":
    app()
