"""WebSocket transport with JSON-RPC framing.

Every inbound text frame is one JSON-RPC request and is answered with one
response frame. Frames are independent of each other; the connection stays
open until the peer closes it.
"""

from __future__ import annotations

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.mcp import PriceTools, RequestHandler
from coingecko_relay.mcp.jsonrpc import dumps
from coingecko_relay.utils import get_logger

from .common import create_base_app

NOT_FOUND_TEXT = "Not Found. Use WebSocket connection."


async def serve_connection(websocket: WebSocket, handler: RequestHandler) -> None:
    """Run the receive -> handle -> send loop for one connection."""
    logger = get_logger("transports.websocket")
    await websocket.accept()
    logger.info("websocket_connected", client=str(websocket.client))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            logger.debug("websocket_message_received", size=len(data))
            response = await handler.handle_text(data)
            if response is None:
                continue
            await websocket.send_text(dumps(response))
            logger.debug("websocket_response_sent", id=response.get("id"))
    except WebSocketDisconnect as e:
        logger.info("websocket_disconnected", code=e.code)
    except Exception as e:
        # Unrecoverable for this connection only.
        logger.error("websocket_connection_error", error=str(e))
        try:
            await websocket.close(code=1011)
        except RuntimeError:
            # Already closed by the peer.
            pass


def create_websocket_app(client: CoinGeckoClient) -> FastAPI:
    """Create the WebSocket JSON-RPC app."""

    app = create_base_app(
        client,
        title="CoinGecko Price WebSocket Relay",
        not_found_text=NOT_FOUND_TEXT,
    )
    handler = RequestHandler(PriceTools(client))
    app.state.handler = handler

    @app.websocket("/{path:path}")
    async def websocket_endpoint(websocket: WebSocket, path: str):
        await serve_connection(websocket, handler)

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"])
    async def not_found(path: str):
        return PlainTextResponse(NOT_FOUND_TEXT, status_code=404)

    return app
