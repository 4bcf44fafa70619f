"""
CDP error types.

All errors raised by the connection layer derive from CDPError.
"""

from __future__ import annotations

from typing import Any, Optional


class CDPError(Exception):
    """Base class for CDP client errors."""


class CDPConnectionError(CDPError, ConnectionError):
    """The transport to the browser could not be established."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot connect to {url}: {reason}")


class ConnectionClosed(CDPError):
    """The connection (or session) ended while work was outstanding."""


class ProtocolError(CDPError):
    """The browser answered a command with an error envelope."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Optional[Any] = None,
        *,
        method: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.data = data
        self.method = method
        text = f"CDP Error {code}: {message}"
        if method:
            text = f"{text} ({method})"
        super().__init__(text)


class DecodeError(CDPError):
    """An inbound message could not be decoded into an envelope."""

    def __init__(self, message: str, raw: Any = None) -> None:
        self.raw = raw
        super().__init__(message)
