"""JSON-RPC / MCP layer shared by all transports."""

from .handler import RequestHandler
from .jsonrpc import ErrorKind, RpcFailure, RpcResult, RpcSuccess
from .tools import PRICE_TOOL_NAME, TOOL_DEFS, PriceTools

__all__ = [
    "ErrorKind",
    "PRICE_TOOL_NAME",
    "PriceTools",
    "RequestHandler",
    "RpcFailure",
    "RpcResult",
    "RpcSuccess",
    "TOOL_DEFS",
]
