"""Small helpers shared across transports."""

from __future__ import annotations

import time


def timestamp_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def format_price(price: float) -> str:
    """Render a price the way it appears in tool text (65000, not 65000.0)."""
    if isinstance(price, float) and price.is_integer():
        return str(int(price))
    return str(price)
