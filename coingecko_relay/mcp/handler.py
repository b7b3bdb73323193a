"""JSON-RPC request routing shared by the WebSocket and split transports."""

from __future__ import annotations

from typing import Any, Optional, Union

from coingecko_relay import __version__
from coingecko_relay.utils import get_logger

from .jsonrpc import (
    ErrorKind,
    JsonRpcRequest,
    RpcFailure,
    RpcResult,
    RpcSuccess,
    decode,
    parse_request,
    recover_id,
    to_response,
)
from .tools import PriceTools

PROTOCOL_VERSION = "2024-11-05"


class RequestHandler:
    """Validates JSON-RPC envelopes and routes them to ``PriceTools``."""

    def __init__(self, tools: PriceTools):
        self.tools = tools
        self.logger = get_logger("mcp.handler")

    async def handle_text(self, text: Union[str, bytes]) -> Optional[dict[str, Any]]:
        """Handle one raw message; undecodable JSON answers with a null id."""
        body = decode(text)
        if isinstance(body, RpcFailure):
            self.logger.warning("jsonrpc_parse_error", error=body.message)
            return to_response(None, body)
        return await self.handle(body)

    async def handle(self, body: Any) -> Optional[dict[str, Any]]:
        """Handle one decoded message.

        Returns:
            The response envelope, or None for notifications.
        """
        request = parse_request(body)
        if isinstance(request, RpcFailure):
            request_id = recover_id(body)
            self.logger.warning("jsonrpc_invalid_request", id=request_id, error=request.message)
            return to_response(request_id, request)
        return await self.dispatch(request)

    async def dispatch(self, request: JsonRpcRequest) -> Optional[dict[str, Any]]:
        """Route an already validated request."""
        self.logger.info("jsonrpc_request", method=request.method, id=request.id)

        if request.is_notification:
            self.logger.debug("mcp_notification", method=request.method)
            return None

        outcome = await self._route(request)
        if isinstance(outcome, RpcFailure):
            self.logger.warning(
                "jsonrpc_error",
                method=request.method,
                id=request.id,
                code=int(outcome.kind),
                error=outcome.message,
            )
        return to_response(request.id, outcome)

    async def _route(self, request: JsonRpcRequest) -> RpcResult:
        method = request.method
        params = request.params

        try:
            if method in ("listTools", "tools/list"):
                return RpcSuccess(self.tools.list_tools())

            if method in ("callTool", "tools/call"):
                if not isinstance(params, dict) or not isinstance(params.get("name"), str):
                    return RpcFailure(ErrorKind.INVALID_PARAMS, "Invalid params for callTool")
                return await self.tools.handle_tool_call(params["name"], params.get("arguments"))

            if method == "initialize":
                return RpcSuccess(
                    {
                        "protocolVersion": PROTOCOL_VERSION,
                        "serverInfo": {"name": "coingecko-relay", "version": __version__},
                        "capabilities": {"tools": {}},
                    }
                )
        except Exception as e:
            self.logger.exception("jsonrpc_processing_error", method=method, id=request.id)
            return RpcFailure(ErrorKind.INTERNAL_ERROR, str(e) or "Internal Server Error")

        return RpcFailure(ErrorKind.METHOD_NOT_FOUND, f"Unsupported method: {method}")
