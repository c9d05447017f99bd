"""
Subprocess execution for csfmod.

Rewritten sources can be piped through an external formatter such as
prettier. The formatter reads the source on stdin and writes the
formatted text to stdout; a failing or missing formatter is reported
through the result, never raised.
"""

import os
import subprocess
import time
from typing import List, Optional

from pydantic import BaseModel, Field
import structlog

from csfmod.config import get_settings

logger = structlog.get_logger()


class CommandResult(BaseModel):
    """Result of a command execution."""

    command: str = Field(..., description="The command that was executed")
    exit_code: int = Field(..., description="Process exit code")
    stdout: str = Field(default="", description="Standard output")
    stderr: str = Field(default="", description="Standard error")
    execution_time_ms: int = Field(..., description="Execution time in milliseconds")
    timed_out: bool = Field(default=False, description="Whether the command timed out")
    success: bool = Field(..., description="Whether the command succeeded (exit code 0)")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def run_command(
    cmd: List[str],
    cwd: Optional[str] = None,
    timeout: Optional[int] = None,
    env: Optional[dict] = None,
    input_text: Optional[str] = None,
) -> CommandResult:
    """
    Execute a command, feeding ``input_text`` to its stdin.

    Args:
        cmd: Command and arguments as a list (e.g., ["npx", "prettier"])
        cwd: Working directory for the command
        timeout: Timeout in seconds (default from settings)
        env: Additional environment variables
        input_text: Text fed to the command's standard input

    Returns:
        CommandResult with exit code, output, and timing information
    """
    timeout = timeout or get_settings().formatter_timeout
    command_str = " ".join(cmd)
    logger.debug("command_start", command=command_str, cwd=cwd)
    start = time.perf_counter()

    try:
        process = subprocess.run(
            cmd,
            cwd=cwd,
            timeout=timeout,
            capture_output=True,
            input=input_text,
            text=True,
            env={**os.environ, **(env or {})},
        )
    except subprocess.TimeoutExpired:
        logger.warning("command_timeout", command=command_str, timeout=timeout)
        return CommandResult(
            command=command_str,
            exit_code=-1,
            execution_time_ms=_elapsed_ms(start),
            timed_out=True,
            success=False,
        )
    except FileNotFoundError:
        logger.error("command_not_found", command=cmd[0])
        return CommandResult(
            command=command_str,
            exit_code=-1,
            stderr=f"Command not found: {cmd[0]}",
            execution_time_ms=_elapsed_ms(start),
            success=False,
        )

    result = CommandResult(
        command=command_str,
        exit_code=process.returncode,
        stdout=process.stdout or "",
        stderr=process.stderr or "",
        execution_time_ms=_elapsed_ms(start),
        success=process.returncode == 0,
    )
    logger.debug(
        "command_complete",
        command=command_str,
        exit_code=result.exit_code,
        duration_ms=result.execution_time_ms,
    )
    return result


def prettier_args(quote_style: str, trailing_comma: bool, tab_width: int) -> List[str]:
    """prettier options matching the transform's own print options."""
    args = ["--tab-width", str(tab_width), "--trailing-comma", "all" if trailing_comma else "none"]
    if quote_style == "single":
        args.append("--single-quote")
    return args


def run_formatter(
    command: List[str],
    source_code: str,
    path: str,
    quote_style: str = "single",
    trailing_comma: bool = True,
    tab_width: int = 2,
    timeout: Optional[int] = None,
) -> CommandResult:
    """
    Pipe source text through a prettier-compatible formatter.

    ``path`` is passed as ``--stdin-filepath`` so the formatter picks
    the parser matching the file extension.
    """
    cmd = list(command) + prettier_args(quote_style, trailing_comma, tab_width)
    cmd += ["--stdin-filepath", path or "story.jsx"]
    return run_command(cmd, timeout=timeout, input_text=source_code)
