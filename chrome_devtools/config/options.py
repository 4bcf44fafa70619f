"""
Configuration options for chrome-devtools connections.

Strongly-typed, validated options shared by the connection, the WebSocket
transport and HTTP endpoint discovery.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_EVENT_QUEUE_SIZE,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
)


class ConnectionOptions(BaseModel):
    """Options for a CDP connection."""

    command_timeout: Optional[float] = Field(
        DEFAULT_COMMAND_TIMEOUT,
        gt=0,
        description="Default per-command timeout in seconds (None waits forever)",
    )
    open_timeout: float = Field(
        DEFAULT_OPEN_TIMEOUT, gt=0, description="WebSocket handshake timeout in seconds"
    )
    max_message_size: Optional[int] = Field(
        DEFAULT_MAX_MESSAGE_SIZE,
        ge=1024,
        description="Largest inbound message in bytes (None for no limit)",
    )
    ping_interval: Optional[float] = Field(
        DEFAULT_PING_INTERVAL, gt=0, description="Keepalive ping interval (None disables)"
    )
    ping_timeout: Optional[float] = Field(
        DEFAULT_PING_TIMEOUT, gt=0, description="Keepalive pong timeout"
    )
    event_queue_size: int = Field(
        DEFAULT_EVENT_QUEUE_SIZE,
        ge=0,
        description="Per-subscription queue bound (0 for unbounded)",
    )
    http_timeout: float = Field(
        DEFAULT_HTTP_TIMEOUT, gt=0, description="Timeout for /json discovery requests"
    )

    @model_validator(mode="after")
    def check_ping(self) -> "ConnectionOptions":
        if self.ping_timeout is not None and self.ping_interval is None:
            # websockets ignores ping_timeout without pings
            self.ping_timeout = None
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> "ConnectionOptions":
        """Build options from CDP_CONNECTION_* variables plus explicit overrides."""
        from .env import load_env_config

        data = load_env_config().get("connection", {})
        data.update(overrides)
        return cls(**data)
