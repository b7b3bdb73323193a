"""structlog configuration.

All modules log through ``get_logger(name)`` with snake_case event names and
keyword context, e.g. ``logger.info("sse_connection_started", session_id=sid)``.
"""

from __future__ import annotations

import logging
import sys

import structlog

from coingecko_relay.config import get_settings


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and the stdlib root logger once at startup."""
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # uvicorn and aiohttp log through stdlib logging; keep them on the same level.
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    if (fmt or settings.log_format) == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to a component name."""
    return structlog.get_logger(name).bind(component=name)
