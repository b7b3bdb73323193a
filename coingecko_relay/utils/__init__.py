"""Logging and helper utilities."""

from .helpers import format_price, timestamp_ms
from .logging import get_logger, setup_logging

__all__ = [
    "format_price",
    "get_logger",
    "setup_logging",
    "timestamp_ms",
]
