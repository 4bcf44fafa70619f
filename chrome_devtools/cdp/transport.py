"""
Message transports for CDP connections.

A transport is a duplex, message-framed channel carrying UTF-8 JSON text.
The connection treats it as opaque: it writes whole messages and reads whole
messages, nothing else.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

import websockets
from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import InvalidHandshake, InvalidURI

from chrome_devtools.cdp.errors import CDPConnectionError, ConnectionClosed
from chrome_devtools.config.options import ConnectionOptions

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Duplex message channel used by CDPConnection."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the channel is closed."""

    @abstractmethod
    async def send(self, message: str) -> None:
        """Write one message.

        Raises:
            ConnectionClosed: If the channel is closed.
        """

    @abstractmethod
    async def recv(self) -> Union[str, bytes]:
        """Read the next inbound message.

        Raises:
            ConnectionClosed: When the channel ends.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""


class WebSocketTransport(Transport):
    """Transport over the browser's remote-debugging WebSocket."""

    def __init__(self, ws: ClientConnection, url: str) -> None:
        self._ws = ws
        self._url = url
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def closed(self) -> bool:
        return self._closed

    @classmethod
    async def connect(
        cls,
        url: str,
        options: Optional[ConnectionOptions] = None,
    ) -> "WebSocketTransport":
        """Open a WebSocket to ``url``.

        Raises:
            CDPConnectionError: If the handshake fails or times out.
        """
        options = options or ConnectionOptions()
        logger.debug(f"Connecting to CDP: {url}")
        try:
            ws = await ws_connect(
                url,
                max_size=options.max_message_size,
                ping_interval=options.ping_interval,
                ping_timeout=options.ping_timeout,
                open_timeout=options.open_timeout,
            )
        except InvalidURI as e:
            raise CDPConnectionError(url, f"invalid URI: {e}") from e
        except InvalidHandshake as e:
            raise CDPConnectionError(url, f"handshake failed: {e}") from e
        except (OSError, asyncio.TimeoutError) as e:
            raise CDPConnectionError(url, str(e) or type(e).__name__) from e

        logger.debug("CDP WebSocket established")
        return cls(ws, url)

    async def send(self, message: str) -> None:
        if self._closed:
            raise ConnectionClosed("WebSocket is closed")
        try:
            await self._ws.send(message)
        except websockets.exceptions.ConnectionClosed as e:
            self._closed = True
            raise ConnectionClosed(f"WebSocket closed: {e}") from e

    async def recv(self) -> Union[str, bytes]:
        if self._closed:
            raise ConnectionClosed("WebSocket is closed")
        try:
            return await self._ws.recv()
        except websockets.exceptions.ConnectionClosed as e:
            self._closed = True
            raise ConnectionClosed(f"WebSocket closed: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._ws.close()
