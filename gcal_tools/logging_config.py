"""
Structured logging for gcal-tools, using structlog wrapping stdlib.

Console output by default; JSON lines when GCAL_TOOLS_LOG_FORMAT=json.
Fields bound with ``scan_context`` are merged into every line logged while
the scan runs, including lines from stdlib loggers.

Usage:
    from gcal_tools.logging_config import configure_once, get_logger, scan_context

    configure_once()
    logger = get_logger(__name__)
    with scan_context(target_calendar="primary", calendars=2):
        logger.info("scan started")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from contextlib import AbstractContextManager

import structlog


# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("aiohttp", "asyncio")


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    if level is None:
        level = os.environ.get("GCAL_TOOLS_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("GCAL_TOOLS_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (config loader, aiohttp) go through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def configure_once() -> None:
    """Configure logging from the environment unless the host already did."""
    if not structlog.is_configured():
        setup_logging()


def scan_context(**fields) -> AbstractContextManager:
    """Bind fields to every log line emitted inside the ``with`` block."""
    return structlog.contextvars.bound_contextvars(**fields)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["configure_once", "get_logger", "scan_context", "setup_logging"]
