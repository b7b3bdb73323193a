"""JSON-RPC 2.0 envelopes.

Protocol errors are returned as values: every handler produces either an
``RpcSuccess`` or an ``RpcFailure`` tagged with one of the fixed ``ErrorKind``
codes, and ``to_response`` turns that into the wire envelope for a request id.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Union

JSONRPC_VERSION = "2.0"

RequestId = Union[str, int, float, None]


class ErrorKind(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


@dataclass(frozen=True)
class RpcSuccess:
    result: Any


@dataclass(frozen=True)
class RpcFailure:
    kind: ErrorKind
    message: str
    data: Any = None

    def to_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": int(self.kind), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


RpcResult = Union[RpcSuccess, RpcFailure]


@dataclass(frozen=True)
class JsonRpcRequest:
    """A validated request envelope."""

    method: str
    id: RequestId = None
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return self.method.startswith("notifications/")


def to_response(request_id: RequestId, outcome: RpcResult) -> dict[str, Any]:
    """Build the response envelope for ``outcome``, echoing ``request_id`` unchanged."""
    if isinstance(outcome, RpcSuccess):
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": outcome.result}
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": outcome.to_error()}


def error_response(request_id: RequestId, kind: ErrorKind, message: str) -> dict[str, Any]:
    return to_response(request_id, RpcFailure(kind, message))


def _is_valid_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return value is None or isinstance(value, (str, int, float))


def recover_id(body: Any) -> RequestId:
    """Best-effort id of a (possibly malformed) request body, else None."""
    if isinstance(body, dict):
        candidate = body.get("id")
        if _is_valid_id(candidate):
            return candidate
    return None


def parse_request(body: Any) -> Union[JsonRpcRequest, RpcFailure]:
    """Validate a decoded request body.

    Returns the request, or an ``INVALID_REQUEST`` failure when the envelope
    is not an object, lacks ``jsonrpc: "2.0"`` or a string ``method``, or has
    an id that is not a string, number or null.
    """
    if not isinstance(body, dict):
        return RpcFailure(ErrorKind.INVALID_REQUEST, "Invalid JSON-RPC request structure")

    method = body.get("method")
    if body.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str) or not method:
        return RpcFailure(ErrorKind.INVALID_REQUEST, "Invalid JSON-RPC request structure")

    request_id = body.get("id")
    if not _is_valid_id(request_id):
        return RpcFailure(ErrorKind.INVALID_REQUEST, "Invalid JSON-RPC request id")

    return JsonRpcRequest(method=method, id=request_id, params=body.get("params"))


def decode(text: Union[str, bytes]) -> Union[Any, RpcFailure]:
    """Decode JSON text, mapping undecodable input to a ``PARSE_ERROR`` failure."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        return RpcFailure(ErrorKind.PARSE_ERROR, f"Parse error: {e}")


def dumps(message: Optional[dict[str, Any]]) -> str:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))
