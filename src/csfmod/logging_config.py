"""
Logging configuration for csfmod using structlog.

Batch runs in CI get one JSON object per event; interactive runs get
console output on stderr so it never mixes with the command's report.
"""

import atexit
import logging
import sys
from typing import Optional, TextIO

import structlog


def _renderer(json_logs: bool, stream: TextIO):
    if json_logs:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    colors = stream is sys.stderr and stream.isatty()
    return [structlog.dev.ConsoleRenderer(colors=colors)]


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logs: If True, output JSON formatted logs
        log_file: Append logs to this file instead of stderr
    """
    if log_file:
        stream = open(log_file, "a", encoding="utf-8")
        atexit.register(stream.close)
    else:
        stream = sys.stderr
    numeric_level = getattr(logging, level.upper())

    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level)

    structlog.configure(
        processors=[
            # per-file context bound by the batch driver
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderer(json_logs, stream),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger().debug("logging_configured", level=level, json_mode=json_logs)
