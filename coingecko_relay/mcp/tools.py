"""MCP tool definitions for the CoinGecko price relay."""

from __future__ import annotations

from typing import Any

from coingecko_relay.coingecko import CoinGeckoClient
from coingecko_relay.utils import format_price, get_logger

from .jsonrpc import ErrorKind, RpcFailure, RpcResult, RpcSuccess

PRICE_TOOL_NAME = "get_coingecko_price"

TOOL_DEFS: list[dict[str, Any]] = [
    {
        "name": PRICE_TOOL_NAME,
        "description": "Get the current price of a cryptocurrency from CoinGecko.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "token_id": {
                    "type": "string",
                    "description": "The CoinGecko ID of the token (e.g., 'bitcoin', 'ethereum').",
                }
            },
            "required": ["token_id"],
        },
    },
]


def price_text(token_id: str, price: float) -> str:
    return f"The current price of {token_id} is ${format_price(price)} USD."


class PriceTools:
    """Executes tool calls against the CoinGecko client."""

    def __init__(self, client: CoinGeckoClient):
        self.client = client
        self.logger = get_logger("mcp.tools")

    def list_tools(self) -> dict[str, Any]:
        return {"tools": TOOL_DEFS}

    async def handle_tool_call(self, tool_name: Any, arguments: Any) -> RpcResult:
        """Run one tool call and wrap its outcome as an RPC result."""
        if tool_name != PRICE_TOOL_NAME:
            return RpcFailure(ErrorKind.METHOD_NOT_FOUND, f"Unknown tool: {tool_name}")

        if not isinstance(arguments, dict) or not isinstance(arguments.get("token_id"), str):
            return RpcFailure(
                ErrorKind.INVALID_PARAMS,
                'Invalid arguments for get_coingecko_price: requires a "token_id" string.',
            )

        token_id = arguments["token_id"]
        result = await self.client.fetch_price(token_id)
        if result.price is None:
            self.logger.warning("tool_call_failed", tool=tool_name, token_id=token_id, error=result.error)
            return RpcFailure(ErrorKind.INTERNAL_ERROR, result.error or "Failed to get price.")

        # MCP tool call results are a list of content blocks.
        return RpcSuccess(
            {"content": [{"type": "text", "text": price_text(token_id, result.price)}]}
        )
