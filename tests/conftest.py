"""
Shared fixtures for chrome-devtools tests.

FakeTransport is an in-memory duplex channel: tests read what the
connection wrote with ``next_sent()`` and push browser messages with
``feed()``.
"""

import asyncio
import json
from typing import Any, Union

import pytest

from chrome_devtools.cdp.errors import ConnectionClosed
from chrome_devtools.cdp.transport import Transport

_EOF = object()


class FakeTransport(Transport):
    """In-memory transport standing in for the browser WebSocket."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: str) -> None:
        if self._closed:
            raise ConnectionClosed("fake transport closed")
        payload = json.loads(message)
        self.sent.append(payload)
        self._outbox.put_nowait(payload)

    async def recv(self) -> Union[str, bytes]:
        item = await self._inbox.get()
        if item is _EOF:
            self._closed = True
            raise ConnectionClosed("fake transport ended")
        return item

    async def close(self) -> None:
        self.close_calls += 1
        if not self._closed:
            self._closed = True
            self._inbox.put_nowait(_EOF)

    # test helpers

    def feed(self, message: Union[dict[str, Any], str, bytes]) -> None:
        """Queue a message as if the browser had sent it."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._inbox.put_nowait(message)

    def drop(self) -> None:
        """Simulate the browser closing the socket."""
        self._inbox.put_nowait(_EOF)

    async def next_sent(self, timeout: float = 1.0) -> dict[str, Any]:
        """Wait for the next message the connection wrote."""
        return await asyncio.wait_for(self._outbox.get(), timeout=timeout)


async def settle(rounds: int = 5) -> None:
    """Let the reader task and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


async def reply(transport: FakeTransport, result: Any = None) -> dict[str, Any]:
    """Answer the next command the connection writes; returns that command."""
    command = await transport.next_sent()
    response = {"id": command["id"], "result": result if result is not None else {}}
    transport.feed(response)
    return command
