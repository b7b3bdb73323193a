"""Main entry point for the CoinGecko price relay."""

import signal
import sys
from typing import Callable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables
load_dotenv()

from coingecko_relay import __version__
from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.config import get_settings
from coingecko_relay.transports import create_split_app, create_sse_app, create_websocket_app
from coingecko_relay.utils import get_logger, setup_logging

APP_FACTORIES: dict[str, Callable[[CoinGeckoClient], FastAPI]] = {
    "sse": create_sse_app,
    "websocket": create_websocket_app,
    "split": create_split_app,
}


def create_app(transport: Optional[str] = None) -> FastAPI:
    """Build the app for ``transport`` (defaults to the TRANSPORT setting)."""
    name = transport or get_settings().transport
    try:
        factory = APP_FACTORIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown transport '{name}'. Choose one of: {', '.join(APP_FACTORIES)}"
        ) from None
    return factory(CoinGeckoClient())


def main(argv: Optional[list[str]] = None):
    """Main entry point.

    Usage: ``coingecko-relay [sse|websocket|split]``
    """
    args = sys.argv[1:] if argv is None else argv

    # Setup logging
    setup_logging()
    logger = get_logger("main")

    settings = get_settings()
    transport = args[0] if args else settings.transport

    try:
        app = create_app(transport)
    except ValueError as e:
        logger.error("invalid_transport", transport=transport, error=str(e))
        sys.exit(2)

    # Handle signals
    def signal_handler(sig, frame):
        logger.info("shutdown_signal_received", signal=sig)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "starting_uvicorn",
        transport=transport,
        host=settings.host,
        port=settings.port,
        version=__version__,
    )

    # uvicorn closes open connections and runs the lifespan shutdown before
    # the handlers above see the signal.
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=settings.debug,
    )


if __name__ == "__main__":
    main()
