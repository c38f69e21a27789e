"""Correlation of in-flight paint requests with their results."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from paintboard.errors import RequestTimeout
from paintboard.protocol import PaintResult

LOGGER = logging.getLogger(__name__)


@dataclass
class PendingEntry:
    request_id: int
    frame: bytes
    future: Optional[asyncio.Future[PaintResult]] = None
    attempts: int = 0
    sent_at: Optional[float] = None
    timeout_handle: Optional[asyncio.TimerHandle] = None


@dataclass
class PendingTable:
    """Maps request ids to the waiting caller and the frame needed to resend.

    A local timeout fails the caller but keeps the frame, so a later reconnect
    still replays it. Entries leave the table only on a matching result or an
    explicit abandon.
    """

    timeout: float = 10.0
    _entries: Dict[int, PendingEntry] = field(default_factory=dict, init=False, repr=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: int) -> bool:
        return request_id in self._entries

    def register(self, request_id: int, frame: bytes) -> asyncio.Future[PaintResult]:
        """Track a new request and start its local timeout."""

        if request_id in self._entries:
            raise ValueError(f"request id {request_id} is already pending")
        loop = asyncio.get_running_loop()
        future: asyncio.Future[PaintResult] = loop.create_future()
        entry = PendingEntry(request_id=request_id, frame=bytes(frame), future=future, sent_at=loop.time())
        entry.timeout_handle = loop.call_later(self.timeout, self._expire, request_id)
        self._entries[request_id] = entry
        return future

    def resolve(self, result: PaintResult) -> bool:
        """Deliver a result to its caller. Unknown ids are ignored."""

        entry = self._entries.pop(result.request_id, None)
        if entry is None:
            LOGGER.debug("Ignoring result for unknown request %s", result.request_id)
            return False
        if entry.timeout_handle:
            entry.timeout_handle.cancel()
        if entry.future and not entry.future.done():
            entry.future.set_result(result)
        else:
            LOGGER.debug("Result for request %s arrived after its caller gave up", result.request_id)
        return True

    def abandon(self, request_id: int) -> None:
        """Forget a request entirely; it will not be resent."""

        entry = self._entries.pop(request_id, None)
        if entry is None:
            return
        if entry.timeout_handle:
            entry.timeout_handle.cancel()
        if entry.future and not entry.future.done():
            entry.future.cancel()

    def drain_all(self) -> List[bytes]:
        """Return every retained frame in submission order for replay.

        Entries stay registered; each one's transmission counter is bumped.
        """

        frames: List[bytes] = []
        for entry in self._entries.values():
            entry.attempts += 1
            frames.append(entry.frame)
        return frames

    def fail_all(self, exc: BaseException) -> None:
        """Fail every waiting caller and drop all retained frames."""

        for entry in self._entries.values():
            if entry.timeout_handle:
                entry.timeout_handle.cancel()
            if entry.future and not entry.future.done():
                entry.future.set_exception(exc)
        self._entries.clear()

    def _expire(self, request_id: int) -> None:
        entry = self._entries.get(request_id)
        if entry is None:
            return
        entry.timeout_handle = None
        if entry.future and not entry.future.done():
            LOGGER.warning("Paint request %s timed out; frame kept for resend", request_id)
            entry.future.set_exception(RequestTimeout(request_id))


__all__ = ["PendingEntry", "PendingTable"]
