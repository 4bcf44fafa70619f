"""
CDP Session management.

Provides target-scoped sessions over a shared CDPConnection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from chrome_devtools.cdp.errors import ConnectionClosed, ProtocolError
from chrome_devtools.cdp.events import EventHandler, EventSubscription
from chrome_devtools.domains.target import TargetApi, TargetInfo

if TYPE_CHECKING:
    from chrome_devtools.cdp.connection import CDPConnection

_UNSET: Any = object()


class CDPSession:
    """Chrome DevTools Protocol session for a specific target.

    A CDPSession is attached to a specific target (page, worker, etc.) and
    provides methods to send CDP commands and receive events. Every command
    and subscription made through it carries its session id. The session
    never owns the transport; it ends when the target detaches or the
    connection closes.

    Example:
        async with await connect(ws_url) as connection:
            session = await connection.create_session(target_id)
            await session.send("Page.enable")
            await session.send("Page.navigate", {"url": "https://example.com"})
            await session.detach()
    """

    def __init__(
        self,
        connection: CDPConnection,
        target_id: str,
        session_id: str,
    ) -> None:
        """Initialize CDP session.

        Args:
            connection: Parent CDP connection.
            target_id: Target ID this session is attached to.
            session_id: CDP session ID.
        """
        self._connection = connection
        self._target_id = target_id
        self._session_id = session_id
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<CDPSession {self._session_id} target={self._target_id} {state}>"

    @property
    def connection(self) -> CDPConnection:
        return self._connection

    @property
    def target_id(self) -> str:
        """Get the target ID."""
        return self._target_id

    @property
    def session_id(self) -> str:
        """Get the session ID."""
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_connected(self) -> bool:
        """Check if session is usable."""
        return not self._closed and self._connection.is_connected

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = _UNSET,
    ) -> dict[str, Any]:
        """Send a CDP command to this session's target.

        Raises:
            ProtocolError: If command fails.
            ConnectionClosed: If the session is closed.
        """
        if self._closed:
            raise ConnectionClosed(f"Session {self._session_id} is closed")

        if timeout is _UNSET:
            return await self._connection.send(method, params, session_id=self._session_id)
        return await self._connection.send(
            method, params, session_id=self._session_id, timeout=timeout
        )

    def subscribe(
        self,
        method: Optional[str] = None,
        *,
        maxsize: Optional[int] = None,
    ) -> EventSubscription:
        """Subscribe to this session's events (all of them if ``method`` is None)."""
        return self._connection.subscribe(method, session_id=self._session_id, maxsize=maxsize)

    def events(self) -> EventSubscription:
        return self.subscribe(None)

    def on(self, event: str, handler: EventHandler) -> None:
        """Register an event handler for this session."""
        self._connection.on(event, handler, session_id=self._session_id)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove an event handler."""
        self._connection.off(event, handler, session_id=self._session_id)

    async def wait_for_event(
        self,
        event: str,
        *,
        predicate: Optional[Callable[[dict[str, Any]], bool]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        return await self._connection.wait_for_event(
            event,
            session_id=self._session_id,
            predicate=predicate,
            timeout=timeout,
        )

    async def detach(self) -> None:
        """Detach from the target. Safe to call more than once."""
        if self._closed:
            return

        if self._connection.is_connected:
            try:
                await self._connection.send(
                    "Target.detachFromTarget",
                    {"sessionId": self._session_id},
                )
            except (ProtocolError, ConnectionClosed) as e:
                # the target may already be gone
                self._connection.logger.debug(f"Detach of {self._session_id} failed: {e}")

        self._connection._release_session(self._session_id, "Session detached")
        self._connection.logger.debug(f"Detached CDP session {self._session_id}")

    def _mark_closed(self) -> None:
        self._closed = True

    async def __aenter__(self) -> "CDPSession":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.detach()


class TargetManager:
    """Manages CDP targets and sessions.

    Provides utilities for discovering and managing browser targets.
    """

    def __init__(self, connection: CDPConnection) -> None:
        self._connection = connection
        self._target_api = TargetApi(connection)
        self._sessions: dict[str, CDPSession] = {}
        self._target_info: dict[str, TargetInfo] = {}

    @property
    def target_api(self) -> TargetApi:
        return self._target_api

    async def get_targets(self) -> list[TargetInfo]:
        """Get all available targets, refreshing the cache."""
        targets = await self._target_api.get_targets()

        for target in targets:
            self._target_info[target.target_id] = target

        return targets

    async def get_pages(self) -> list[TargetInfo]:
        """Get all page targets."""
        targets = await self.get_targets()
        return [t for t in targets if t.is_page]

    async def get_target_info(self, target_id: str) -> Optional[TargetInfo]:
        """Get info for a specific target.

        Returns:
            Target info or None if the browser does not know the target.
        """
        if target_id in self._target_info:
            return self._target_info[target_id]

        await self.get_targets()
        return self._target_info.get(target_id)

    async def create_session(self, target_id: str) -> CDPSession:
        """Return a live session for ``target_id``, attaching if needed."""
        session = self._sessions.get(target_id)
        if session is not None and session.is_connected:
            return session

        session = await self._connection.create_session(target_id)
        self._sessions[target_id] = session
        return session

    async def close_session(self, target_id: str) -> None:
        """Detach the session for ``target_id``, if any."""
        session = self._sessions.pop(target_id, None)
        if session:
            await session.detach()

    async def create_page(
        self,
        url: str = "about:blank",
        *,
        browser_context_id: Optional[str] = None,
    ) -> CDPSession:
        """Create a new page and return its session."""
        target_id = await self._target_api.create_target(
            url, browser_context_id=browser_context_id
        )
        return await self.create_session(target_id)

    async def close_page(self, target_id: str) -> None:
        """Close a page and forget its session."""
        await self.close_session(target_id)
        self._target_info.pop(target_id, None)
        try:
            await self._target_api.close_target(target_id)
        except ProtocolError as e:
            self._connection.logger.debug(f"Closing target {target_id} failed: {e}")

    async def enable_auto_attach(self) -> None:
        """Enable automatic attachment to new targets."""
        await self._target_api.set_auto_attach(True, flatten=True)

    async def close_all_sessions(self) -> None:
        """Close all managed sessions."""
        for target_id in list(self._sessions.keys()):
            await self.close_session(target_id)
