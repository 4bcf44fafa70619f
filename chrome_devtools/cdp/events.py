"""
CDP event routing.

Events pushed by the browser are published to two kinds of consumers:

- EventSubscription: a filtered, bounded queue consumed with ``async for``.
- Callback handlers registered with ``on()``; coroutine handlers are
  scheduled as tasks.

Subscriptions are keyed by (method, session id). A session id of None is the
root browser session; a method of None matches every event of that session.
The dispatch loop never waits on a consumer: when a subscription queue is
full the oldest queued event is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from chrome_devtools.cdp.errors import ConnectionClosed

EventHandler = Callable[[dict[str, Any]], Any]

_CLOSED = object()


@dataclass(frozen=True)
class CDPEvent:
    """A single protocol event."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None

    @property
    def domain(self) -> str:
        return self.method.split(".", 1)[0]


class EventSubscription:
    """Filtered view over the connection's event stream.

    Example:
        async with connection.subscribe("Page.loadEventFired") as events:
            async for event in events:
                print(event.params)
    """

    def __init__(
        self,
        router: "EventRouter",
        method: Optional[str],
        session_id: Optional[str],
        maxsize: int = 0,
    ) -> None:
        self._router = router
        self._method = method
        self._session_id = session_id
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._eof_queued = False
        self.dropped = 0

    @property
    def method(self) -> Optional[str]:
        return self._method

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: CDPEvent) -> bool:
        if event.session_id != self._session_id:
            return False
        return self._method is None or self._method == event.method

    def pending(self) -> int:
        """Number of events waiting to be consumed."""
        return self._queue.qsize() - (1 if self._eof_queued else 0)

    def deliver(self, event: CDPEvent) -> None:
        """Queue an event without blocking; drops the oldest event when full."""
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            self._router.logger.warning(
                f"Event queue full for {self._method or '*'} "
                f"(session={self._session_id}); dropped oldest event"
            )
        self._queue.put_nowait(event)

    async def get(self) -> CDPEvent:
        """Wait for the next event.

        Raises:
            ConnectionClosed: If the subscription ended and no events remain.
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the marker for any other waiter
            self._queue.put_nowait(_CLOSED)
            raise ConnectionClosed("Event subscription closed")
        return item

    def close(self) -> None:
        """Stop receiving events. Already queued events stay readable."""
        if self._closed:
            return
        self._closed = True
        self._router.unsubscribe(self)
        if self._queue.full():
            # make room for the end marker
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(_CLOSED)
        self._eof_queued = True

    def __aiter__(self) -> "EventSubscription":
        return self

    async def __anext__(self) -> CDPEvent:
        try:
            return await self.get()
        except ConnectionClosed:
            raise StopAsyncIteration from None

    def __enter__(self) -> "EventSubscription":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    async def __aenter__(self) -> "EventSubscription":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()


class EventRouter:
    """Fans events out to subscriptions and handlers."""

    def __init__(
        self,
        *,
        default_maxsize: int = 0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._default_maxsize = default_maxsize
        self._subscriptions: list[EventSubscription] = []
        self._handlers: dict[tuple[Optional[str], str], list[EventHandler]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriptions(self) -> list[EventSubscription]:
        return list(self._subscriptions)

    def subscribe(
        self,
        method: Optional[str] = None,
        *,
        session_id: Optional[str] = None,
        maxsize: Optional[int] = None,
    ) -> EventSubscription:
        """Create a subscription for ``method`` (all methods if None)."""
        session_id = session_id or None
        subscription = EventSubscription(
            self,
            method,
            session_id,
            self._default_maxsize if maxsize is None else maxsize,
        )
        if self._closed:
            subscription.close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: EventSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def on(
        self,
        method: str,
        handler: EventHandler,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        """Register a callback for ``method`` on ``session_id``."""
        session_id = session_id or None
        self._handlers.setdefault((session_id, method), []).append(handler)

    def off(
        self,
        method: str,
        handler: EventHandler,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        """Remove a callback registered with on()."""
        session_id = session_id or None
        handlers = self._handlers.get((session_id, method), [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop((session_id, method), None)

    def publish(self, event: CDPEvent) -> int:
        """Deliver ``event`` to every matching consumer.

        Returns:
            Number of consumers the event was delivered to.
        """
        if self._closed:
            return 0

        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.deliver(event)
                delivered += 1

        for handler in list(self._handlers.get((event.session_id, event.method), [])):
            delivered += 1
            try:
                result = handler(event.params)
                if asyncio.iscoroutine(result):
                    task = asyncio.create_task(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._handler_done)
            except Exception as e:
                self.logger.exception(f"Error in CDP event handler for {event.method}: {e}")

        return delivered

    def close_session(self, session_id: str) -> None:
        """End every subscription and drop every handler of a session."""
        for subscription in list(self._subscriptions):
            if subscription.session_id == session_id:
                subscription.close()
        for key in [k for k in self._handlers if k[0] == session_id]:
            del self._handlers[key]

    def close(self) -> None:
        """End all subscriptions and drop all handlers."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscriptions):
            subscription.close()
        self._subscriptions.clear()
        self._handlers.clear()

    def _handler_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Async CDP event handler failed: {error!r}")
