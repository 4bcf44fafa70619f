"""
Chrome DevTools Protocol (CDP) connection layer.

This module multiplexes commands, responses, events and target sessions over
a single browser WebSocket:
- CDPConnection: owns the transport, correlates responses, routes events
- CDPSession: command/event namespace of one attached target
- TargetManager: target discovery and session bookkeeping
- EventSubscription: filtered, bounded event stream

Example usage:
    ```python
    from chrome_devtools.cdp import connect

    async with await connect("http://localhost:9222") as connection:
        targets = await connection.send("Target.getTargets")
        page = next(t for t in targets["targetInfos"] if t["type"] == "page")

        session = await connection.create_session(page["targetId"])
        await session.send("Page.enable")

        async with session.subscribe("Page.loadEventFired") as loads:
            await session.send("Page.navigate", {"url": "https://example.com"})
            await loads.get()

        await session.detach()
    ```
"""

from chrome_devtools.cdp.codec import (
    CommandEnvelope,
    ErrorPayload,
    EventEnvelope,
    ResponseEnvelope,
    decode_message,
    encode_command,
)
from chrome_devtools.cdp.connection import CDPConnection, connect
from chrome_devtools.cdp.discovery import get_version, list_targets, resolve_ws_url
from chrome_devtools.cdp.errors import (
    CDPConnectionError,
    CDPError,
    ConnectionClosed,
    DecodeError,
    ProtocolError,
)
from chrome_devtools.cdp.events import CDPEvent, EventRouter, EventSubscription
from chrome_devtools.cdp.pending import PendingCall, PendingCallTable
from chrome_devtools.cdp.session import CDPSession, TargetManager
from chrome_devtools.cdp.transport import Transport, WebSocketTransport

__all__ = [
    # Connection
    "CDPConnection",
    "connect",
    # Session
    "CDPSession",
    "TargetManager",
    # Events
    "CDPEvent",
    "EventRouter",
    "EventSubscription",
    # Codec
    "CommandEnvelope",
    "ErrorPayload",
    "EventEnvelope",
    "ResponseEnvelope",
    "decode_message",
    "encode_command",
    # Pending calls
    "PendingCall",
    "PendingCallTable",
    # Transport
    "Transport",
    "WebSocketTransport",
    # Discovery
    "get_version",
    "list_targets",
    "resolve_ws_url",
    # Errors
    "CDPError",
    "CDPConnectionError",
    "ConnectionClosed",
    "DecodeError",
    "ProtocolError",
]
