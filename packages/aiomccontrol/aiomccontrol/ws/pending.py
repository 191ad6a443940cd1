"""Request/response correlation for outgoing calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from aiomccontrol.models import Err, Status

_LOGGER = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "timeout"


@dataclass
class PendingRequest:
    id: int
    name: str
    issued_at: float
    timer: asyncio.TimerHandle
    future: asyncio.Future[Status[Any]]


class PendingRequests:
    """Tracks outgoing calls and correlates them with responses.

    Each call gets a unique ID, an asyncio.Future and a timer. The future is
    resolved exactly once: by the matching response, by the timer firing
    (``Err("timeout")``) or by ``flush_all`` when the connection drops.
    """

    def __init__(self) -> None:
        self._pending: dict[int, PendingRequest] = {}
        self._counter: int = 0

    def next_id(self) -> int:
        """Return next unique request ID (monotonically increasing).

        Never reset, so ids stay unique across reconnects.
        """
        self._counter += 1
        return self._counter

    def register(
        self, request_id: int, timeout: float, name: str = ""
    ) -> asyncio.Future[Status[Any]]:
        """Register a pending call and start its timeout. Returns a Future.

        Raises ValueError if request_id is already tracked.
        """
        if request_id in self._pending:
            raise ValueError(f"Request {request_id} is already tracked")
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Status[Any]] = loop.create_future()
        timer = loop.call_later(timeout, self._expire, request_id)
        self._pending[request_id] = PendingRequest(
            id=request_id,
            name=name,
            issued_at=loop.time(),
            timer=timer,
            future=future,
        )
        # Awaiting task cancelled: drop the entry so it can't linger.
        future.add_done_callback(lambda _f: self._discard(request_id, future))
        return future

    def resolve(self, request_id: int, status: Status[Any]) -> bool:
        """Resolve a pending call with its status.

        Returns True if a matching call was found, False otherwise (late or
        duplicate response). Removes the entry from the pending map.
        """
        entry = self._pending.pop(request_id, None)
        if entry is None:
            _LOGGER.debug("No pending request for id %s, dropping", request_id)
            return False
        entry.timer.cancel()
        if entry.future.done():
            return False
        entry.future.set_result(status)
        return True

    def withdraw(self, request_id: int) -> None:
        """Forget a call that was never sent. Its future is cancelled."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        entry.timer.cancel()
        entry.future.cancel()

    def flush_all(self, status: Status[Any]) -> int:
        """Resolve every pending call with *status*. Called on disconnect.

        The map is emptied before any future is resolved, so a callback
        that registers a new call never sees the old entries.
        Returns the number of calls flushed.
        """
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_result(status)
        return len(entries)

    @property
    def pending_count(self) -> int:
        """Number of in-flight calls."""
        return len(self._pending)

    def name_of(self, request_id: int) -> str | None:
        """Logical call name of a live request, or None if not pending."""
        entry = self._pending.get(request_id)
        return entry.name if entry is not None else None

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def _expire(self, request_id: int) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        _LOGGER.debug(
            "Request %s (id=%s) timed out", entry.name or "?", request_id
        )
        if not entry.future.done():
            entry.future.set_result(Err(TIMEOUT_MESSAGE))

    def _discard(
        self, request_id: int, future: asyncio.Future[Status[Any]]
    ) -> None:
        entry = self._pending.get(request_id)
        if entry is not None and entry.future is future:
            del self._pending[request_id]
            entry.timer.cancel()
