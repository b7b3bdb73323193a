"""CoinGecko upstream client."""

from .client import INVALID_TOKEN_ERROR, CoinGeckoClient
from .types import PriceResult

__all__ = [
    "CoinGeckoClient",
    "INVALID_TOKEN_ERROR",
    "PriceResult",
]
