"""Data types for CoinGecko responses."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceResult:
    """Outcome of one price lookup: exactly one of ``price`` or ``error`` is set."""

    price: float | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.price is None) == (self.error is None):
            raise ValueError("PriceResult requires exactly one of price or error")

    @property
    def ok(self) -> bool:
        return self.price is not None
