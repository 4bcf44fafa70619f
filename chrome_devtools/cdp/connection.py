"""
CDP connection multiplexer.

One CDPConnection owns one transport (normally the browser WebSocket) and
multiplexes over it:

- commands from any number of concurrent callers, correlated to their
  responses by id;
- events, fanned out to subscriptions and handlers keyed by
  (method, session id);
- per-target sessions, which share the transport and differ only by the
  ``sessionId`` carried in each envelope.

A single reader task drains the transport for the lifetime of the
connection. There is no reconnection: once the transport ends, every
pending call fails with ConnectionClosed and the connection is done.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import ValidationError

from chrome_devtools.cdp.codec import ResponseEnvelope, decode_message, encode_command
from chrome_devtools.cdp.discovery import resolve_ws_url
from chrome_devtools.cdp.errors import ConnectionClosed, DecodeError
from chrome_devtools.cdp.events import CDPEvent, EventHandler, EventRouter, EventSubscription
from chrome_devtools.cdp.pending import PendingCall, PendingCallTable
from chrome_devtools.cdp.session import CDPSession
from chrome_devtools.cdp.transport import Transport, WebSocketTransport
from chrome_devtools.config.options import ConnectionOptions
from chrome_devtools.domains.target import AttachedToTarget, DetachedFromTarget, TargetApi

_UNSET: Any = object()

_TargetEventT = TypeVar("_TargetEventT", AttachedToTarget, DetachedFromTarget)


class CDPConnection:
    """Manages one transport to a browser's CDP endpoint.

    Handles id correlation, event dispatching and target sessions.

    Example:
        async with await connect("ws://localhost:9222/devtools/browser/xxx") as connection:
            version = await connection.send("Browser.getVersion")
            session = await connection.create_session(target_id)
            await session.send("Page.enable")
    """

    def __init__(
        self,
        transport: Transport,
        *,
        options: Optional[ConnectionOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Wrap an open transport and start reading from it.

        Must be called from a running event loop.

        Args:
            transport: Open duplex message channel.
            options: Connection options (defaults if omitted).
            logger: Diagnostic sink; the module logger if omitted.
        """
        self._transport = transport
        self._options = options or ConnectionOptions()
        self._logger = logger or logging.getLogger(__name__)
        self._pending = PendingCallTable()
        self._router = EventRouter(
            default_maxsize=self._options.event_queue_size,
            logger=self._logger,
        )
        self._sessions: dict[str, CDPSession] = {}
        self._write_lock = asyncio.Lock()
        self._closed = False
        self._close_reason: Optional[BaseException] = None
        self._closed_event = asyncio.Event()
        self._reader_task: asyncio.Task[None] = asyncio.get_running_loop().create_task(
            self._receive_loop()
        )

    @classmethod
    async def connect(
        cls,
        url: str,
        *,
        options: Optional[ConnectionOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "CDPConnection":
        """Open a WebSocket to ``url`` and return a running connection.

        ``url`` may be a ``ws://`` endpoint or an ``http://host:port``
        debugging address, which is resolved through ``/json/version``.

        Raises:
            CDPConnectionError: If the transport cannot be established.
        """
        options = options or ConnectionOptions()
        ws_url = await resolve_ws_url(url, timeout=options.http_timeout)
        transport = await WebSocketTransport.connect(ws_url, options)
        return cls(transport, options=options, logger=logger)

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def is_connected(self) -> bool:
        """Check if the connection is usable."""
        return not self._closed and not self._transport.closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def close_reason(self) -> Optional[BaseException]:
        """Transport error that ended the connection, if any."""
        return self._close_reason

    @property
    def pending_count(self) -> int:
        """Number of commands still waiting for a response."""
        return len(self._pending)

    @property
    def sessions(self) -> dict[str, CDPSession]:
        """Live sessions keyed by session id."""
        return dict(self._sessions)

    def get_session(self, session_id: str) -> Optional[CDPSession]:
        return self._sessions.get(session_id)

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        session_id: Optional[str] = None,
        timeout: Optional[float] = _UNSET,
    ) -> dict[str, Any]:
        """Send a CDP command and wait for its response.

        Args:
            method: CDP method name (e.g., "Page.navigate").
            params: Optional parameters for the method.
            session_id: Session to address; None for the browser session.
            timeout: Seconds to wait; defaults to options.command_timeout,
                None waits forever.

        Returns:
            The ``result`` object of the response.

        Raises:
            ProtocolError: If the browser answered with an error.
            ConnectionClosed: If the connection or session closed first.
            asyncio.TimeoutError: If the timeout elapsed.
        """
        if self._closed:
            raise ConnectionClosed("Connection is closed")

        call = self._pending.register(method, session_id or None)

        try:
            message = encode_command(call.id, method, params, session_id)
            try:
                async with self._write_lock:
                    if self._closed:
                        raise ConnectionClosed("Connection is closed")
                    await self._transport.send(message)
            except ConnectionClosed as e:
                self._abandon(call)
                await self._shutdown(e)
                raise
            except Exception as e:
                self._abandon(call)
                self._logger.error(f"CDP write failed for {method}: {e!r}")
                await self._shutdown(e)
                raise ConnectionClosed(f"Transport write failed: {e}") from e

            self._logger.debug(f"CDP send: {method} (id={call.id}, session={session_id})")

            if timeout is _UNSET:
                timeout = self._options.command_timeout
            if timeout is None:
                return await call.future
            return await asyncio.wait_for(call.future, timeout=timeout)
        finally:
            self._pending.discard(call.id)

    def subscribe(
        self,
        method: Optional[str] = None,
        *,
        session_id: Optional[str] = None,
        maxsize: Optional[int] = None,
    ) -> EventSubscription:
        """Subscribe to events.

        Args:
            method: Event name, or None for every event of the session.
            session_id: Session to observe; None for the browser session.
            maxsize: Queue bound; defaults to options.event_queue_size.
        """
        return self._router.subscribe(method, session_id=session_id, maxsize=maxsize)

    def events(self, session_id: Optional[str] = None) -> EventSubscription:
        """Stream every event of one session."""
        return self.subscribe(None, session_id=session_id)

    def on(
        self,
        event: str,
        handler: EventHandler,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        """Register a CDP event handler.

        Args:
            event: Event name (e.g., "Page.loadEventFired").
            handler: Callback receiving the event params; may be async.
            session_id: Optional session ID to scope the handler.
        """
        self._router.on(event, handler, session_id=session_id)

    def off(
        self,
        event: str,
        handler: EventHandler,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        """Remove a CDP event handler."""
        self._router.off(event, handler, session_id=session_id)

    async def wait_for_event(
        self,
        event: str,
        *,
        session_id: Optional[str] = None,
        predicate: Optional[Callable[[dict[str, Any]], bool]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Wait for the next ``event`` whose params satisfy ``predicate``.

        Raises:
            ConnectionClosed: If the connection closed first.
            asyncio.TimeoutError: If the timeout elapsed.
        """
        subscription = self.subscribe(event, session_id=session_id)

        async def _next() -> dict[str, Any]:
            async for item in subscription:
                if predicate is None or predicate(item.params):
                    return item.params
            raise ConnectionClosed(f"Connection closed while waiting for {event}")

        try:
            return await asyncio.wait_for(_next(), timeout=timeout)
        finally:
            subscription.close()

    async def create_session(self, target_id: str) -> CDPSession:
        """Attach to a target and return a session scoped to it.

        Raises:
            ProtocolError: If the browser refuses to attach.
        """
        session_id = await TargetApi(self).attach_to_target(target_id, flatten=True)
        session = self._sessions.get(session_id)
        if session is None:
            session = self._register_session(session_id, target_id)

        self._logger.debug(f"Created CDP session {session_id} for target {target_id}")
        return session

    async def close(self) -> None:
        """Close the transport and fail all outstanding work. Idempotent."""
        await self._shutdown(None)
        if self._reader_task is not asyncio.current_task() and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass

    async def wait_closed(self) -> None:
        """Wait until the connection has shut down."""
        await self._closed_event.wait()

    def _abandon(self, call: PendingCall) -> None:
        """Drop a call whose command never reached the transport."""
        self._pending.discard(call.id)
        if call.future.done() and not call.future.cancelled():
            # already failed by shutdown; the caller gets the write error instead
            call.future.exception()

    def _register_session(self, session_id: str, target_id: str) -> CDPSession:
        session = CDPSession(self, target_id, session_id)
        self._sessions[session_id] = session
        return session

    def _release_session(self, session_id: str, reason: str) -> None:
        """Forget a session and end everything scoped to it."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session._mark_closed()
        self._router.close_session(session_id)
        failed = self._pending.fail_session(session_id, reason)
        if failed:
            self._logger.debug(f"Failed {failed} pending call(s) of session {session_id}")

    async def _shutdown(self, reason: Optional[BaseException]) -> None:
        if self._closed:
            return
        self._closed = True
        self._close_reason = reason

        try:
            await self._transport.close()
        except Exception as e:
            self._logger.warning(f"Error closing CDP transport: {e!r}")

        message = "Connection closed" if reason is None else f"Connection lost ({reason})"
        failed = self._pending.fail_all(message, reason)
        for session in list(self._sessions.values()):
            session._mark_closed()
        self._sessions.clear()
        self._router.close()
        self._closed_event.set()

        if reason is None:
            self._logger.debug("CDP connection closed")
        else:
            self._logger.warning(f"CDP connection lost: {reason}; failed {failed} pending call(s)")

    async def _receive_loop(self) -> None:
        """Background loop to receive and dispatch messages."""
        reason: Optional[BaseException] = None
        try:
            while not self._closed:
                message = await self._transport.recv()
                if self._closed:
                    break
                try:
                    self._dispatch(message)
                except Exception as e:
                    self._logger.exception(f"Error dispatching CDP message: {e!r}")
        except ConnectionClosed as e:
            reason = e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.exception(f"CDP receive loop error: {e}")
            reason = e
        finally:
            if not self._closed:
                await self._shutdown(reason or ConnectionClosed("Transport ended"))

    def _dispatch(self, message: Union[str, bytes]) -> None:
        if self._closed:
            return
        try:
            envelope = decode_message(message)
        except DecodeError as e:
            self._logger.warning(f"Dropping malformed CDP message: {e} ({str(e.raw)[:100]!r})")
            return

        if isinstance(envelope, ResponseEnvelope):
            self._handle_response(envelope)
        else:
            self._handle_event(CDPEvent(envelope.method, envelope.params, envelope.session_id))

    def _handle_response(self, response: ResponseEnvelope) -> None:
        call = self._pending.resolve(response)
        if call is not None:
            self._logger.debug(f"CDP recv: {call.method} (id={call.id})")
        elif self._pending.was_issued(response.id):
            self._logger.debug(f"Late CDP response for abandoned call id={response.id}")
        else:
            self._logger.warning(f"Dropping CDP response with unknown id={response.id}")

    def _handle_event(self, event: CDPEvent) -> None:
        if event.method == TargetApi.ATTACHED_TO_TARGET:
            attached = self._parse_target_event(AttachedToTarget, event)
            if attached is not None and attached.session_id not in self._sessions:
                target_id = attached.target_info.target_id
                self._register_session(attached.session_id, target_id)
                self._logger.debug(
                    f"Auto-attached CDP session {attached.session_id} for target {target_id}"
                )

        self._router.publish(event)

        if event.method == TargetApi.DETACHED_FROM_TARGET:
            detached = self._parse_target_event(DetachedFromTarget, event)
            if detached is not None:
                self._release_session(detached.session_id, "Target detached")

    def _parse_target_event(
        self, model: type[_TargetEventT], event: CDPEvent
    ) -> Optional[_TargetEventT]:
        try:
            return model.model_validate(event.params)
        except ValidationError as e:
            self._logger.warning(
                f"Ignoring session bookkeeping for malformed {event.method}: "
                f"{e.error_count()} validation error(s)"
            )
            return None

    async def __aenter__(self) -> "CDPConnection":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()


async def connect(
    url: str,
    *,
    options: Optional[ConnectionOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> CDPConnection:
    """Open a CDP connection to ``url``.

    Raises:
        CDPConnectionError: If the transport cannot be established.
    """
    return await CDPConnection.connect(url, options=options, logger=logger)
