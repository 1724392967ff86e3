"""Server configuration.

Values come from dataclass defaults, overridden by ``MCP_SSE_*`` environment
variables (see ``ServerConfig.from_env``), overridden in turn by CLI flags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from . import __version__

DEFAULT_ALLOWED_ORIGINS = ("http://localhost", "http://127.0.0.1", "null")

ENV_PREFIX = "MCP_SSE_"


class OverflowPolicy(str, Enum):
    """What an outbound channel does when its buffer is full."""

    DROP_OLDEST = "drop_oldest"  # Discard the oldest buffered event
    CLOSE = "close"  # Close the channel and its session


def _env(name: str) -> str | None:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value else None


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """Server configuration."""

    # Network
    host: str = "127.0.0.1"
    port: int = 8080

    # Origin validation (prefix match) and CORS
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Push stream
    ping_interval: float = 30.0
    max_buffered_messages: int = 1000
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST

    # Protocol
    require_initialized: bool = False
    server_name: str = "MCP SSE Server"
    server_version: str = __version__

    def __post_init__(self) -> None:
        self.overflow_policy = OverflowPolicy(self.overflow_policy)
        if self.ping_interval <= 0:
            raise ValueError("ping_interval must be positive")
        if self.max_buffered_messages < 1:
            raise ValueError("max_buffered_messages must be at least 1")

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build a config from ``MCP_SSE_*`` environment variables."""
        config = cls()

        if (value := _env("HOST")) is not None:
            config.host = value
        if (value := _env("PORT")) is not None:
            config.port = int(value)
        if (value := _env("ALLOWED_ORIGINS")) is not None:
            config.allowed_origins = _split(value)
        if (value := _env("CORS_ORIGINS")) is not None:
            config.cors_origins = _split(value)
        if (value := _env("PING_INTERVAL")) is not None:
            config.ping_interval = float(value)
        if (value := _env("MAX_BUFFERED")) is not None:
            config.max_buffered_messages = int(value)
        if (value := _env("OVERFLOW_POLICY")) is not None:
            config.overflow_policy = OverflowPolicy(value.lower())
        if (value := _env("REQUIRE_INITIALIZED")) is not None:
            config.require_initialized = _parse_bool(value)

        # Re-run validation on the overridden values
        config.__post_init__()
        return config
