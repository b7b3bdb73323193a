"""Synchronous HTTP+SSE transport.

Each ``GET /sse?token_id=...`` is a single burst on its own connection:

1) ``status`` event announcing the lookup
2) ``price`` or ``error`` event with a JSON payload
3) ``status`` event "Closing connection."

after which the stream ends. No JSON-RPC framing is used here.
"""

from __future__ import annotations

import json
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Query
from fastapi.responses import PlainTextResponse
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.utils import get_logger

from .common import SSE_HEADERS, create_base_app

CLOSING_MESSAGE = "Closing connection."


async def price_events(client: CoinGeckoClient, token_id: Optional[str]) -> AsyncIterator[ServerSentEvent]:
    """Yield the status / result / status sequence for one lookup."""
    logger = get_logger("transports.sse")
    logger.info("sse_price_request", token_id=token_id)

    status = f"Fetching price for {token_id}..." if token_id else "Fetching price..."
    yield ServerSentEvent(event="status", data=status)

    result = await client.fetch_price(token_id)
    if result.price is not None:
        payload = {"token_id": token_id, "price": result.price}
        yield ServerSentEvent(event="price", data=json.dumps(payload, separators=(",", ":")))
    else:
        logger.warning("sse_price_error", token_id=token_id, error=result.error)
        payload = {"token_id": token_id, "error": result.error}
        yield ServerSentEvent(event="error", data=json.dumps(payload, separators=(",", ":")))

    yield ServerSentEvent(event="status", data=CLOSING_MESSAGE)
    logger.info("sse_connection_closed", token_id=token_id)


def create_sse_app(client: CoinGeckoClient) -> FastAPI:
    """Create the synchronous SSE app."""

    app = create_base_app(client, title="CoinGecko Price SSE Relay")

    @app.get("/")
    async def root():
        return PlainTextResponse("CoinGecko Price SSE server is running.")

    @app.get("/sse")
    async def sse_endpoint(token_id: Optional[str] = Query(default=None)):
        return EventSourceResponse(price_events(client, token_id), headers=SSE_HEADERS)

    return app
