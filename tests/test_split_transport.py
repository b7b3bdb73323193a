"""Tests for the split POST /messages + GET /sse transport."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from coingecko_relay.coingecko import PriceResult
from coingecko_relay.mcp import PRICE_TOOL_NAME
from coingecko_relay.transports import create_split_app
from coingecko_relay.transports.split import STREAM_QUEUE_SIZE, SseStream, StreamSlot, stream_events

CALL_ETHEREUM = {
    "jsonrpc": "2.0",
    "method": "callTool",
    "params": {"name": PRICE_TOOL_NAME, "arguments": {"token_id": "ethereum"}},
    "id": 1,
}


def _drain(stream):
    items = []
    while not stream.queue.empty():
        items.append(stream.queue.get_nowait())
    return items


def test_second_open_closes_first_stream():
    slot = StreamSlot()
    first = slot.open()

    second = slot.open()

    assert first.closed
    assert _drain(first) == [None]
    assert slot.active is second
    assert not second.closed


def test_release_only_clears_own_stream():
    slot = StreamSlot()
    first = slot.open()
    second = slot.open()

    slot.release(first)
    assert slot.active is second

    slot.release(second)
    assert slot.active is None


def test_relay_without_stream_is_dropped():
    slot = StreamSlot()

    assert slot.relay({"jsonrpc": "2.0", "id": 1, "result": {}}) is False


def test_post_messages_relays_result_onto_stream(price_client):
    price_client.fetch_price.return_value = PriceResult(price=3200)
    app = create_split_app(price_client)
    stream = app.state.stream_slot.open()
    client = TestClient(app)

    response = client.post("/messages", json=CALL_ETHEREUM)

    assert response.status_code == 202
    relayed = _drain(stream)
    assert len(relayed) == 1
    assert relayed[0]["id"] == 1
    assert relayed[0]["result"]["content"][0]["text"] == "The current price of ethereum is $3200 USD."


def test_post_messages_without_stream_still_accepted(price_client):
    client = TestClient(create_split_app(price_client))

    response = client.post("/messages", json=CALL_ETHEREUM)

    assert response.status_code == 202
    price_client.fetch_price.assert_awaited_once_with("ethereum")


def test_invalid_json_is_rejected_and_mirrored(price_client):
    app = create_split_app(price_client)
    stream = app.state.stream_slot.open()
    client = TestClient(app)

    response = client.post(
        "/messages", content=b"{nope", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700
    assert response.json()["id"] is None
    assert _drain(stream) == [response.json()]


def test_invalid_envelope_is_rejected_with_id(price_client):
    app = create_split_app(price_client)
    stream = app.state.stream_slot.open()
    client = TestClient(app)

    response = client.post("/messages", json={"method": "callTool", "id": "q"})

    assert response.status_code == 400
    body = response.json()
    assert body["id"] == "q"
    assert body["error"]["code"] == -32600
    assert _drain(stream) == [body]
    price_client.fetch_price.assert_not_awaited()


def test_stale_session_id_is_rejected(price_client):
    app = create_split_app(price_client)
    slot = app.state.stream_slot
    old = slot.open()
    current = slot.open()
    client = TestClient(app)

    stale = client.post(f"/messages?session_id={old.session_id}", json=CALL_ETHEREUM)
    fresh = client.post(f"/messages?session_id={current.session_id}", json=CALL_ETHEREUM)

    assert stale.status_code == 404
    assert fresh.status_code == 202
    assert len(_drain(current)) == 1


@pytest.mark.parametrize("with_session_id", [True, False])
def test_stream_replaced_during_call_gets_no_stale_response(price_client, with_session_id):
    app = create_split_app(price_client)
    slot = app.state.stream_slot
    old = slot.open()
    replacements = []

    def _reconnect_during_lookup(token_id):
        replacements.append(slot.open())
        return PriceResult(price=3200)

    price_client.fetch_price.side_effect = _reconnect_during_lookup
    client = TestClient(app)
    url = f"/messages?session_id={old.session_id}" if with_session_id else "/messages"

    response = client.post(url, json=CALL_ETHEREUM)

    assert response.status_code == 202
    assert slot.active is replacements[0]
    assert _drain(replacements[0]) == []
    # The old stream only got its close marker.
    assert _drain(old) == [None]


def test_full_stream_queue_drops_oldest():
    stream = SseStream(session_id="s", created_at=0)

    for i in range(STREAM_QUEUE_SIZE + 1):
        stream.send({"id": i})
    stream.close()

    items = _drain(stream)
    assert len(items) == STREAM_QUEUE_SIZE
    assert items[0] == {"id": 2}
    assert items[-1] is None


def test_health(price_client):
    client = TestClient(create_split_app(price_client))

    response = client.get("/")

    assert response.status_code == 200
    assert "running" in response.text


@pytest.mark.anyio
async def test_stream_events_sequence_and_eviction():
    slot = StreamSlot()
    stream = slot.open()
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=False)
    events = stream_events(slot, stream, request, ping_interval=30)

    connected = await events.__anext__()
    assert connected.event == "connected"
    assert json.loads(connected.data)["session_id"] == stream.session_id

    stream.send({"jsonrpc": "2.0", "id": 1, "result": {"ok": True}})
    relayed = await events.__anext__()
    assert relayed.event == "mcp_message"
    assert json.loads(relayed.data) == {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}

    replacement = slot.open()
    with pytest.raises(StopAsyncIteration):
        await events.__anext__()
    assert slot.active is replacement


@pytest.mark.anyio
async def test_stream_events_releases_slot_on_disconnect():
    slot = StreamSlot()
    stream = slot.open()
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=True)
    events = stream_events(slot, stream, request, ping_interval=30)

    await events.__anext__()
    with pytest.raises(StopAsyncIteration):
        await events.__anext__()

    assert slot.active is None
    assert stream.closed
