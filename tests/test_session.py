"""
Tests for target sessions and the target manager.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from chrome_devtools.cdp.connection import CDPConnection
from chrome_devtools.cdp.errors import ConnectionClosed, ProtocolError
from chrome_devtools.cdp.session import CDPSession, TargetManager
from chrome_devtools.config.options import ConnectionOptions
from chrome_devtools.domains.target import TargetInfo

from conftest import reply, settle


async def attach(connection: CDPConnection, transport, target_id="T1", session_id="S1"):
    """Run create_session against the fake browser."""
    task = asyncio.create_task(connection.create_session(target_id))
    command = await reply(transport, {"sessionId": session_id})
    return command, await task


class TestCDPSession:
    """Tests for session-scoped commands and events."""

    @pytest.mark.asyncio
    async def test_create_session_attaches_at_root(self, transport):
        connection = CDPConnection(transport)

        command, session = await attach(connection, transport)

        assert command["method"] == "Target.attachToTarget"
        assert command["params"] == {"targetId": "T1", "flatten": True}
        assert "sessionId" not in command
        assert session.session_id == "S1"
        assert session.target_id == "T1"
        assert connection.get_session("S1") is session

        await connection.close()

    @pytest.mark.asyncio
    async def test_attach_is_always_flat(self, transport):
        # stale configs may still carry the removed option
        options = ConnectionOptions.model_validate({"flatten_sessions": False})
        connection = CDPConnection(transport, options=options)

        command, _ = await attach(connection, transport)

        assert command["params"]["flatten"] is True
        await connection.close()

    @pytest.mark.asyncio
    async def test_session_logs_through_injected_logger(self, transport):
        sink = MagicMock(spec=logging.Logger)
        connection = CDPConnection(transport, logger=sink)
        _, session = await attach(connection, transport)

        detaching = asyncio.create_task(session.detach())
        await reply(transport)
        await detaching

        messages = [c.args[0] for c in sink.debug.call_args_list]
        assert any("Detached CDP session S1" in m for m in messages)
        await connection.close()

    @pytest.mark.asyncio
    async def test_session_commands_carry_session_id(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)

        call = asyncio.create_task(session.send("Page.enable"))
        command = await reply(transport, {"done": True})

        assert command["sessionId"] == "S1"
        assert command["method"] == "Page.enable"
        assert await call == {"done": True}

        await connection.close()

    @pytest.mark.asyncio
    async def test_session_events_are_scoped(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)
        page_events = session.subscribe("Page.loadEventFired")
        handler = MagicMock()
        session.on("Page.loadEventFired", handler)

        transport.feed({"method": "Page.loadEventFired", "params": {"t": 1}, "sessionId": "OTHER"})
        transport.feed({"method": "Page.loadEventFired", "params": {"t": 2}, "sessionId": "S1"})

        event = await asyncio.wait_for(page_events.get(), timeout=1)
        assert event.params == {"t": 2}
        handler.assert_called_once_with({"t": 2})

        await connection.close()

    @pytest.mark.asyncio
    async def test_session_wait_for_event(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)

        waiter = asyncio.create_task(session.wait_for_event("Page.frameNavigated"))
        await settle()
        transport.feed({"method": "Page.frameNavigated", "params": {"frame": {}}, "sessionId": "S1"})

        assert await asyncio.wait_for(waiter, timeout=1) == {"frame": {}}

        await connection.close()

    @pytest.mark.asyncio
    async def test_detach(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)
        events = session.events()

        detaching = asyncio.create_task(session.detach())
        command = await reply(transport)
        await detaching

        assert command["method"] == "Target.detachFromTarget"
        assert command["params"] == {"sessionId": "S1"}
        assert "sessionId" not in command
        assert session.closed
        assert events.closed
        assert connection.get_session("S1") is None
        with pytest.raises(ConnectionClosed):
            await session.send("Page.enable")

        # detaching twice is a no-op
        await session.detach()
        assert len(transport.sent) == 2

        await connection.close()

    @pytest.mark.asyncio
    async def test_detach_ignores_protocol_error(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)

        detaching = asyncio.create_task(session.detach())
        command = await transport.next_sent()
        transport.feed({"id": command["id"], "error": {"code": -32602, "message": "No session"}})
        await detaching

        assert session.closed
        await connection.close()

    @pytest.mark.asyncio
    async def test_detached_event_closes_session_and_fails_its_calls(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)
        root_events = connection.subscribe("Target.detachedFromTarget")

        pending = asyncio.create_task(session.send("Runtime.evaluate", {"expression": "1"}))
        await transport.next_sent()
        transport.feed(
            {"method": "Target.detachedFromTarget", "params": {"sessionId": "S1", "targetId": "T1"}}
        )

        with pytest.raises(ConnectionClosed):
            await asyncio.wait_for(pending, timeout=1)
        assert session.closed
        assert (await root_events.get()).params["sessionId"] == "S1"
        assert connection.is_connected

        await connection.close()

    @pytest.mark.asyncio
    async def test_attached_event_registers_session(self, transport):
        connection = CDPConnection(transport)

        transport.feed(
            {
                "method": "Target.attachedToTarget",
                "params": {
                    "sessionId": "AUTO",
                    "targetInfo": {"targetId": "W1", "type": "worker"},
                    "waitingForDebugger": False,
                },
            }
        )
        await settle()

        session = connection.get_session("AUTO")
        assert isinstance(session, CDPSession)
        assert session.target_id == "W1"

        await connection.close()

    @pytest.mark.asyncio
    async def test_connection_close_closes_sessions(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)

        await connection.close()

        assert session.closed
        assert not session.is_connected
        with pytest.raises(ConnectionClosed):
            await session.send("Page.enable")

    @pytest.mark.asyncio
    async def test_session_context_manager_detaches(self, transport):
        connection = CDPConnection(transport)
        _, session = await attach(connection, transport)

        async def browser():
            await reply(transport)

        responder = asyncio.create_task(browser())
        async with session:
            pass
        await responder

        assert session.closed
        await connection.close()


class TestTargetManager:
    """Tests for TargetManager against a mocked connection."""

    @pytest.fixture
    def mock_connection(self):
        connection = MagicMock()
        connection.logger = MagicMock()
        connection.send = AsyncMock(
            return_value={
                "targetInfos": [
                    {"targetId": "P1", "type": "page", "title": "One", "url": "about:blank"},
                    {"targetId": "W1", "type": "service_worker", "url": "https://x/sw.js"},
                ]
            }
        )
        return connection

    @pytest.mark.asyncio
    async def test_get_targets_returns_typed_infos(self, mock_connection):
        manager = TargetManager(mock_connection)

        targets = await manager.get_targets()

        assert [t.target_id for t in targets] == ["P1", "W1"]
        assert isinstance(targets[0], TargetInfo)
        mock_connection.send.assert_awaited_once_with("Target.getTargets")

    @pytest.mark.asyncio
    async def test_get_pages_filters(self, mock_connection):
        manager = TargetManager(mock_connection)

        pages = await manager.get_pages()

        assert [p.target_id for p in pages] == ["P1"]

    @pytest.mark.asyncio
    async def test_get_target_info_uses_cache(self, mock_connection):
        manager = TargetManager(mock_connection)

        info = await manager.get_target_info("W1")
        again = await manager.get_target_info("W1")
        missing = await manager.get_target_info("nope")

        assert info is again
        assert info.url == "https://x/sw.js"
        assert missing is None
        assert mock_connection.send.await_count == 2

    @pytest.mark.asyncio
    async def test_create_session_reuses_live_session(self, mock_connection):
        session = MagicMock(is_connected=True)
        mock_connection.create_session = AsyncMock(return_value=session)
        manager = TargetManager(mock_connection)

        first = await manager.create_session("P1")
        second = await manager.create_session("P1")

        assert first is second is session
        mock_connection.create_session.assert_awaited_once_with("P1")

    @pytest.mark.asyncio
    async def test_create_page(self, mock_connection):
        mock_connection.send = AsyncMock(return_value={"targetId": "NEW"})
        mock_connection.create_session = AsyncMock(return_value=MagicMock(is_connected=True))
        manager = TargetManager(mock_connection)

        await manager.create_page("https://example.com")

        mock_connection.send.assert_awaited_once_with(
            "Target.createTarget", {"url": "https://example.com"}
        )
        mock_connection.create_session.assert_awaited_once_with("NEW")

    @pytest.mark.asyncio
    async def test_close_page_detaches_and_closes(self, mock_connection):
        session = MagicMock(is_connected=True)
        session.detach = AsyncMock()
        mock_connection.create_session = AsyncMock(return_value=session)
        manager = TargetManager(mock_connection)
        await manager.create_session("P1")

        mock_connection.send = AsyncMock(side_effect=ProtocolError(-32000, "No target"))
        await manager.close_page("P1")

        session.detach.assert_awaited_once()
        mock_connection.send.assert_awaited_once_with("Target.closeTarget", {"targetId": "P1"})

    @pytest.mark.asyncio
    async def test_enable_auto_attach(self, mock_connection):
        manager = TargetManager(mock_connection)

        await manager.enable_auto_attach()

        mock_connection.send.assert_awaited_once_with(
            "Target.setAutoAttach",
            {"autoAttach": True, "waitForDebuggerOnStart": False, "flatten": True},
        )

    @pytest.mark.asyncio
    async def test_close_all_sessions(self, mock_connection):
        sessions = {tid: MagicMock(is_connected=True, detach=AsyncMock()) for tid in ("A", "B")}
        mock_connection.create_session = AsyncMock(side_effect=lambda tid: sessions[tid])
        manager = TargetManager(mock_connection)
        await manager.create_session("A")
        await manager.create_session("B")

        await manager.close_all_sessions()

        for session in sessions.values():
            session.detach.assert_awaited_once()
