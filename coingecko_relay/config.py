"""Configuration management for the CoinGecko price relay."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


Transport = Literal["sse", "websocket", "split"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Server Settings
    host: str = Field(default="0.0.0.0", description="Listening interface")
    port: int = Field(default=3000, description="Listening port (all transports)")
    transport: Transport = Field(
        default="websocket",
        description="Which delivery shell main() serves: sse, websocket or split",
    )
    # Some proxies close idle HTTP streams; the split /sse stream pings on this interval.
    sse_ping_interval_sec: int = Field(
        default=15,
        description="Keepalive ping interval (seconds) for the split /sse stream",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")
    debug: bool = Field(default=False)

    # CoinGecko API
    coingecko_api_url: str = Field(default="https://api.coingecko.com/api/v3")
    coingecko_api_key: str | None = Field(
        default=None,
        description="Optional demo API key, sent as x-cg-demo-api-key",
    )
    coingecko_timeout_sec: float = Field(default=30.0)


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance."""
    return settings
