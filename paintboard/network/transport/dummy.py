"""Loopback transport for offline runs."""

from __future__ import annotations

import asyncio
import logging

from paintboard.errors import ProtocolDesyncError
from paintboard.network.transport.base import BaseTransport
from paintboard.protocol import Outcome, decode_paint_frame, encode_paint_result
from paintboard.protocol.frames import OP_HEARTBEAT_PONG, OP_PAINT, PAINT_FRAME_SIZE

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Answers every paint frame with a success result without touching the network."""

    def __init__(self, settings=None) -> None:
        self._settings = settings
        self._inbound: asyncio.Queue[bytes] = asyncio.Queue()

    async def connect(self) -> None:
        LOGGER.debug("Dummy transport connect()")

    async def send(self, data: bytes) -> None:
        replies = bytearray()
        offset = 0
        while offset < len(data):
            opcode = data[offset]
            if opcode == OP_HEARTBEAT_PONG:
                offset += 1
                continue
            if opcode != OP_PAINT:
                raise ProtocolDesyncError(f"dummy transport got opcode 0x{opcode:02x}", offset=offset, opcode=opcode)
            request = decode_paint_frame(data[offset : offset + PAINT_FRAME_SIZE])
            LOGGER.debug("Dummy transport paint id=%s at (%s, %s)", request.request_id, request.x, request.y)
            replies += encode_paint_result(request.request_id, Outcome.SUCCESS)
            offset += PAINT_FRAME_SIZE
        if replies:
            self._inbound.put_nowait(bytes(replies))

    async def receive(self) -> bytes:
        return await self._inbound.get()

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
