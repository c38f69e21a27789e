"""Outbound frame batching on a fixed tick."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)


@dataclass
class BatchScheduler:
    """Accumulates encoded frames and flushes them as one transmission per tick.

    Frames keep submission order within and across flushes, and a frame is
    never split between two transmissions.
    """

    interval: float = 0.02
    _buffer: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _frames: int = field(default=0, init=False, repr=False)

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def pending_frames(self) -> int:
        return self._frames

    def enqueue(self, frame: bytes) -> None:
        self._buffer += frame
        self._frames += 1

    def swap(self) -> bytes:
        """Take the buffered bytes and leave an empty buffer behind."""

        data = bytes(self._buffer)
        self._buffer = bytearray()
        self._frames = 0
        return data

    def clear(self) -> int:
        """Discard buffered frames; returns how many were dropped."""

        dropped = self._frames
        self._buffer = bytearray()
        self._frames = 0
        return dropped

    async def flush(self, send: Callable[[bytes], Awaitable[None]]) -> int:
        """Send everything buffered as a single message; returns bytes sent."""

        if not self._buffer:
            return 0
        frames = self._frames
        data = self.swap()
        LOGGER.debug("Flushing %s frame(s), %s bytes", frames, len(data))
        await send(data)
        return len(data)

    async def run(
        self,
        send: Callable[[bytes], Awaitable[None]],
        is_open: Callable[[], bool],
    ) -> None:
        """Flush on every tick; returns once is_open() reports the session gone."""

        while True:
            await asyncio.sleep(self.interval)
            if not is_open():
                return
            await self.flush(send)
