"""CoinGecko price relay served over SSE, WebSocket and split POST/SSE transports."""

__version__ = "1.0.0"
