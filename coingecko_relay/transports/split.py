"""Split HTTP POST + SSE transport.

Clients hold one long-lived stream open with ``GET /sse`` and send JSON-RPC
requests with ``POST /messages``. POSTs are acknowledged with 202 and the
JSON-RPC response is relayed onto the open stream as an ``mcp_message`` event.

Only one stream is held at a time (``StreamSlot``). A new ``GET /sse`` closes
the previous stream before taking the slot, and a stream only clears the slot
on disconnect if it still owns it. Responses whose stream was replaced or
closed in the meantime are dropped and logged. A client can avoid that race
by passing the ``session_id`` announced in the ``connected`` event to
``/messages``; a stale id is then rejected with 404 instead.
"""

from __future__ import annotations

import asyncio
import json
import secrets
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.config import get_settings
from coingecko_relay.mcp import PriceTools, RequestHandler
from coingecko_relay.mcp.jsonrpc import RpcFailure, decode, dumps, parse_request, recover_id, to_response
from coingecko_relay.utils import get_logger, timestamp_ms

from .common import SSE_HEADERS, create_base_app

STREAM_QUEUE_SIZE = 1000


@dataclass
class SseStream:
    """One open ``/sse`` connection."""

    session_id: str
    created_at: int
    queue: "asyncio.Queue[Optional[dict[str, Any]]]" = field(
        default_factory=lambda: asyncio.Queue(maxsize=STREAM_QUEUE_SIZE)
    )
    closed: bool = False

    def _put_safe(self, item: Optional[dict[str, Any]]) -> None:
        """Put without blocking; a full queue drops its oldest item."""
        try:
            self.queue.put_nowait(item)
        except asyncio.QueueFull:
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self.queue.put_nowait(item)

    def send(self, message: dict[str, Any]) -> bool:
        if self.closed:
            return False
        self._put_safe(message)
        return True

    def close(self) -> None:
        """Ask the event generator to finish; a None item ends the stream."""
        if not self.closed:
            self.closed = True
            self._put_safe(None)


class StreamSlot:
    """Holds at most one active ``SseStream``."""

    def __init__(self):
        self.active: Optional[SseStream] = None
        self.logger = get_logger("transports.split.slot")

    def open(self) -> SseStream:
        """Create a stream, evicting and closing the current one first."""
        previous = self.active
        if previous is not None:
            self.logger.info("sse_stream_evicted", session_id=previous.session_id)
            previous.close()
        stream = SseStream(session_id=secrets.token_hex(16), created_at=timestamp_ms())
        self.active = stream
        return stream

    def release(self, stream: SseStream) -> None:
        """Clear the slot only if ``stream`` still owns it."""
        stream.close()
        if self.active is stream:
            self.active = None

    def relay(self, message: dict[str, Any], target: Optional[SseStream] = None) -> bool:
        """Send ``message`` on ``target``, which must still be the active stream.

        Without ``target`` the current stream is used. Returns False when the
        message was dropped because there is no stream or it was replaced.
        """
        stream = self.active
        if target is not None and stream is not target:
            stream = None
        if stream is None or not stream.send(message):
            self.logger.warning("sse_relay_dropped", id=message.get("id"))
            return False
        self.logger.debug("sse_relay_sent", session_id=stream.session_id, id=message.get("id"))
        return True


def _ping_message() -> ServerSentEvent:
    return ServerSentEvent(event="ping", data="{}")


async def stream_events(
    slot: StreamSlot,
    stream: SseStream,
    request: Request,
    ping_interval: float,
) -> AsyncIterator[ServerSentEvent]:
    """Yield the ``connected`` event, then relayed messages until the stream closes."""
    logger = get_logger("transports.split")
    try:
        yield ServerSentEvent(
            event="connected",
            data=json.dumps(
                {
                    "session_id": stream.session_id,
                    "messages_url": f"/messages?session_id={stream.session_id}",
                },
                separators=(",", ":"),
            ),
        )

        while True:
            if await request.is_disconnected():
                break

            try:
                msg = await asyncio.wait_for(stream.queue.get(), timeout=max(1.0, ping_interval))
            except asyncio.TimeoutError:
                yield _ping_message()
                continue

            if msg is None:
                break

            yield ServerSentEvent(event="mcp_message", data=dumps(msg))
    finally:
        slot.release(stream)
        logger.info("sse_connection_closed", session_id=stream.session_id)


def create_split_app(client: CoinGeckoClient) -> FastAPI:
    """Create the split POST /messages + GET /sse app."""

    settings = get_settings()
    logger = get_logger("transports.split")

    app = create_base_app(client, title="CoinGecko Price Split SSE Relay")
    handler = RequestHandler(PriceTools(client))
    slot = StreamSlot()
    app.state.handler = handler
    app.state.stream_slot = slot

    @app.get("/")
    async def root():
        return PlainTextResponse("CoinGecko Price MCP server (POST /messages + GET /sse) is running.")

    @app.get("/sse")
    async def sse_endpoint(request: Request):
        stream = slot.open()
        logger.info("sse_connection_started", session_id=stream.session_id)
        return EventSourceResponse(
            stream_events(slot, stream, request, settings.sse_ping_interval_sec),
            ping=settings.sse_ping_interval_sec,
            ping_message_factory=_ping_message,
            headers=SSE_HEADERS,
        )

    async def _process_and_relay(body: Any, target: Optional[SseStream]) -> None:
        response = await handler.handle(body)
        if response is None:
            return
        if target is None:
            logger.warning("sse_relay_dropped", id=response.get("id"))
            return
        slot.relay(response, target=target)

    @app.post("/messages")
    async def messages_endpoint(
        request: Request,
        background_tasks: BackgroundTasks,
        session_id: Optional[str] = Query(default=None),
    ):
        if session_id is not None and (slot.active is None or slot.active.session_id != session_id):
            logger.warning("sse_session_unknown", session_id=session_id)
            return PlainTextResponse("Unknown or expired SSE session", status_code=404)

        body = decode(await request.body())
        failure: Optional[RpcFailure] = body if isinstance(body, RpcFailure) else None
        if failure is None:
            request_or_failure = parse_request(body)
            if isinstance(request_or_failure, RpcFailure):
                failure = request_or_failure

        if failure is not None:
            error_body = to_response(None if isinstance(body, RpcFailure) else recover_id(body), failure)
            logger.warning("messages_rejected", code=int(failure.kind), error=failure.message)
            # Mirror the rejection onto the stream as well.
            if slot.active is not None:
                slot.relay(error_body)
            return JSONResponse(status_code=400, content=error_body)

        # Acknowledge now; the JSON-RPC response travels over the SSE stream.
        # The response only goes to the stream that was open when the POST arrived.
        background_tasks.add_task(_process_and_relay, body, slot.active)
        return Response(status_code=202)

    return app
