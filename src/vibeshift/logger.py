"""structlog setup shared by the API server and the CLI."""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "INFO", *, json_logs: bool | None = None) -> None:
    """Configure *structlog* for the process.

    Log lines go to stderr so CLI commands can print JSON on stdout.
    ``json_logs`` defaults to JSON output whenever stderr is not a terminal.
    """
    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
