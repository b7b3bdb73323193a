"""Delivery shells: synchronous SSE, WebSocket JSON-RPC and split POST/SSE."""

from .split import create_split_app
from .sse import create_sse_app
from .websocket import create_websocket_app

__all__ = [
    "create_split_app",
    "create_sse_app",
    "create_websocket_app",
]
