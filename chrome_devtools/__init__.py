"""
chrome-devtools: asyncio client for the Chrome DevTools Protocol.

A single WebSocket to the browser carries commands, responses and events for
the browser itself and for every attached target. This package correlates
responses to concurrent commands, routes events to subscribers and scopes
both to per-target sessions.

Basic usage:
    from chrome_devtools import connect
    from chrome_devtools.domains import BrowserApi

    async with await connect("http://localhost:9222") as connection:
        version = await BrowserApi(connection).get_version()
        print(version.product)

Sessions:
    from chrome_devtools import TargetManager

    manager = TargetManager(connection)
    session = await manager.create_page("https://example.com")
    async for event in session.subscribe("Network.requestWillBeSent"):
        print(event.params["request"]["url"])
"""

__version__ = "0.1.0"
__license__ = "MIT"

from chrome_devtools.cdp import (
    CDPConnection,
    CDPConnectionError,
    CDPError,
    CDPEvent,
    CDPSession,
    ConnectionClosed,
    DecodeError,
    EventSubscription,
    ProtocolError,
    TargetManager,
    connect,
)
from chrome_devtools.config import ConnectionOptions, load_config

__all__ = [
    "__version__",
    "CDPConnection",
    "CDPSession",
    "CDPEvent",
    "EventSubscription",
    "TargetManager",
    "connect",
    "ConnectionOptions",
    "load_config",
    "CDPError",
    "CDPConnectionError",
    "ConnectionClosed",
    "DecodeError",
    "ProtocolError",
]
