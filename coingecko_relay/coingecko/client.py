"""CoinGecko REST client.

One outbound call per lookup against ``/simple/price``, with no retry, caching or
rate limiting. Every failure becomes a ``PriceResult`` error string that the
transports relay to their caller.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from coingecko_relay.config import get_settings
from coingecko_relay.utils import get_logger
from .types import PriceResult

INVALID_TOKEN_ERROR = "Invalid or missing token_id parameter."


class CoinGeckoClient:
    """Async client for the CoinGecko simple price endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_sec: float | None = None,
    ):
        self.settings = get_settings()
        self.base_url = (base_url or self.settings.coingecko_api_url).rstrip("/")
        self.api_key: str | None = (api_key or self.settings.coingecko_api_key or "").strip() or None
        self.timeout_sec = timeout_sec if timeout_sec is not None else self.settings.coingecko_timeout_sec
        self.logger = get_logger("coingecko.client")
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def fetch_price(self, token_id: Any) -> PriceResult:
        """Look up the USD price of ``token_id``."""
        if not token_id or not isinstance(token_id, str):
            return PriceResult(error=INVALID_TOKEN_ERROR)

        session = await self._get_session()
        url = f"{self.base_url}/simple/price"
        params = {"ids": token_id, "vs_currencies": "usd"}
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else None

        try:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status >= 400:
                    detail = await self._error_detail(response)
                    self.logger.warning(
                        "price_request_failed",
                        token_id=token_id,
                        status=response.status,
                        detail=detail,
                    )
                    return PriceResult(error=f"CoinGecko API error: {detail}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # asyncio.TimeoutError covers aiohttp's total timeout; ValueError covers a non-JSON body.
            message = str(e) or e.__class__.__name__
            self.logger.warning("price_request_error", token_id=token_id, error=message)
            return PriceResult(error=f"CoinGecko API error: {message}")

        price = _extract_usd(data, token_id)
        if price is None:
            self.logger.info("price_not_found", token_id=token_id)
            return PriceResult(error=f"Could not find price data for token ID: {token_id}")

        self.logger.debug("price_fetched", token_id=token_id, price=price)
        return PriceResult(price=price)

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> str:
        """Prefer the upstream ``error`` field, fall back to the HTTP reason."""
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"Request failed with status code {response.status}"


def _extract_usd(data: Any, token_id: str) -> float | None:
    if not isinstance(data, dict):
        return None
    entry = data.get(token_id)
    if not isinstance(entry, dict):
        return None
    usd = entry.get("usd")
    if isinstance(usd, bool) or not isinstance(usd, (int, float)):
        return None
    # Only a positive quote counts as a price.
    if usd <= 0:
        return None
    return usd
