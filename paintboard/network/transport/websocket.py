"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect

from paintboard.config import PaintboardSettings
from paintboard.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """Binary WebSocket transport for the paint socket."""

    def __init__(self, settings: PaintboardSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self) -> None:
        LOGGER.info("Connecting to paint socket at %s", self._settings.ws_url)
        self._ws = await connect(
            str(self._settings.ws_url),
            open_timeout=self._settings.open_timeout_seconds,
        )

    async def send(self, data: bytes) -> None:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s bytes", len(data))
        await self._ws.send(data)

    async def receive(self) -> bytes:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        raw = await self._ws.recv()
        if isinstance(raw, str):
            LOGGER.debug("WebSocket receive: unexpected text frame %r", raw[:64])
            return raw.encode("utf-8")
        LOGGER.debug("WebSocket receive: %s bytes", len(raw))
        return raw

    async def close(self) -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close()
            self._ws = None
