"""FastAPI plumbing shared by the three delivery shells."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coingecko_relay import __version__
from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.utils import get_logger

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def create_base_app(
    client: CoinGeckoClient,
    *,
    title: str,
    not_found_text: str = "Not Found",
) -> FastAPI:
    """FastAPI app with CORS, a fixed plain-text 404 and a lifespan that closes ``client``."""

    logger = get_logger("transports.app")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("app_started", title=title)
        try:
            yield
        finally:
            await client.close()
            logger.info("app_stopped", title=title)

    app = FastAPI(title=title, version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods both get the same fixed 404.
        if exc.status_code in (404, 405):
            return PlainTextResponse(not_found_text, status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    return app
