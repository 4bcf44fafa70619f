"""
Pending-call table.

Tracks in-flight commands by id. Ids are unique per connection (not per
session) and strictly increasing, so an id is never reused while a call
holding it is pending.

All mutation happens on the event loop thread: callers register from their
own tasks and the dispatch loop resolves, so no lock is required.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from chrome_devtools.cdp.codec import ResponseEnvelope
from chrome_devtools.cdp.errors import ConnectionClosed


@dataclass
class PendingCall:
    """One command waiting for its response."""

    id: int
    method: str
    session_id: Optional[str]
    future: asyncio.Future[dict[str, Any]]

    @property
    def done(self) -> bool:
        return self.future.done()


class PendingCallTable:
    """Maps call ids to the futures of their waiting callers."""

    def __init__(self) -> None:
        self._ids: Iterator[int] = itertools.count(1)
        self._last_id = 0
        self._calls: dict[int, PendingCall] = {}
        self._closed = False

    def __len__(self) -> int:
        return len(self._calls)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._calls

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_id(self) -> int:
        """Highest id handed out so far (0 if none)."""
        return self._last_id

    def was_issued(self, call_id: int) -> bool:
        """Whether ``call_id`` was ever allocated by this table."""
        return 0 < call_id <= self._last_id

    def register(self, method: str, session_id: Optional[str] = None) -> PendingCall:
        """Allocate the next id and create a waiter for it.

        Raises:
            ConnectionClosed: If the table was already failed.
        """
        if self._closed:
            raise ConnectionClosed("Connection is closed")

        call_id = next(self._ids)
        self._last_id = call_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        call = PendingCall(id=call_id, method=method, session_id=session_id, future=future)
        self._calls[call_id] = call
        return call

    def resolve(self, response: ResponseEnvelope) -> Optional[PendingCall]:
        """Complete the call matching ``response.id``.

        Returns:
            The resolved call, or None if no call with that id is pending.
        """
        if self._closed:
            return None

        call = self._calls.pop(response.id, None)
        if call is None:
            return None

        if not call.future.done():
            if response.error is not None:
                call.future.set_exception(response.error.to_exception(call.method))
            else:
                call.future.set_result(response.result)
        return call

    def discard(self, call_id: int) -> None:
        """Forget a call whose caller stopped waiting."""
        self._calls.pop(call_id, None)

    def fail_session(self, session_id: str, reason: str) -> int:
        """Fail every call issued on ``session_id``.

        Returns:
            Number of calls failed.
        """
        doomed = [c for c in self._calls.values() if c.session_id == session_id]
        for call in doomed:
            del self._calls[call.id]
            self._fail(call, reason)
        return len(doomed)

    def fail_all(self, reason: str, cause: Optional[BaseException] = None) -> int:
        """Fail every pending call and refuse further registrations.

        Returns:
            Number of calls failed.
        """
        self._closed = True
        calls = list(self._calls.values())
        self._calls.clear()
        for call in calls:
            self._fail(call, reason, cause)
        return len(calls)

    @staticmethod
    def _fail(
        call: PendingCall, reason: str, cause: Optional[BaseException] = None
    ) -> None:
        if call.future.done():
            return
        error = ConnectionClosed(f"{reason} while waiting for {call.method} (id={call.id})")
        error.__cause__ = cause
        call.future.set_exception(error)
