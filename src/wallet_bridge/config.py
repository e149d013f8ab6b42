"""Configuration for the Wallet Bridge client."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .bridge_url import BridgeURL

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class BridgeSettings(BaseSettings):
    """Environment-driven settings, read from ``WALLET_BRIDGE_*`` variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    bridge_url: str = Field(default="https://bridge.worldcoin.org", alias="WALLET_BRIDGE_URL")
    poll_interval_seconds: float = Field(default=3.0, gt=0, alias="WALLET_BRIDGE_POLL_INTERVAL")
    request_timeout_seconds: float = Field(
        default=10.0, gt=0, alias="WALLET_BRIDGE_REQUEST_TIMEOUT"
    )
    user_agent: str = Field(default="wallet-bridge-python", alias="WALLET_BRIDGE_USER_AGENT")
    connect_base_url: str = Field(
        default="https://worldcoin.org/verify", alias="WALLET_BRIDGE_CONNECT_BASE_URL"
    )
    log_level: str = Field(default="INFO", alias="WALLET_BRIDGE_LOG_LEVEL")
    log_format: Literal["text", "json"] = Field(default="text", alias="WALLET_BRIDGE_LOG_FORMAT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in VALID_LOG_LEVELS:
            msg = f"Log level must be one of {VALID_LOG_LEVELS}"
            raise ValueError(msg)
        return v.upper()

    def default_bridge_url(self) -> BridgeURL:
        """The configured relay, validated."""
        return BridgeURL.parse(self.bridge_url)


@lru_cache
def get_settings() -> BridgeSettings:
    """Return a cached settings instance."""

    return BridgeSettings()
