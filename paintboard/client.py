"""Public paint client: credential, submission and retry policy."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Optional

from paintboard.config import PaintboardSettings
from paintboard.credentials import CredentialService
from paintboard.errors import (
    ClientClosed,
    RequestTimeout,
    RetriesExhausted,
    TransportError,
    UnknownOutcome,
)
from paintboard.network.connection import Connection
from paintboard.network.transport.base import BaseTransport
from paintboard.network.transport.dummy import DummyTransport
from paintboard.network.transport.websocket import WebSocketTransport
from paintboard.protocol import Outcome, PaintRequest, PaintResult, encode_paint, next_request_id

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaintOutcome:
    request_id: int
    outcome: Outcome


def default_transport_factory(settings: PaintboardSettings) -> BaseTransport:
    if settings.transport == "dummy":
        return DummyTransport(settings)
    return WebSocketTransport(settings)


@dataclass
class PaintClient:
    """Turns paint(owner, secret, colour, coordinate) into one outcome per call."""

    settings: PaintboardSettings
    transport_factory: Callable[[PaintboardSettings], BaseTransport] = default_transport_factory
    credentials: Optional[CredentialService] = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    connection: Optional[Connection] = field(default=None, init=False, repr=False)
    _owns_credentials: bool = field(default=False, init=False, repr=False)

    def _ensure_layers(self) -> None:
        if self.credentials is None:
            self.credentials = CredentialService(settings=self.settings)
            self._owns_credentials = True
        if self.connection is None:
            self.connection = Connection(self.settings, self.transport_factory)

    async def start(self) -> None:
        self._ensure_layers()
        assert self.connection is not None
        await self.connection.start()

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.stop()
        if self._owns_credentials and self.credentials is not None:
            self.credentials.close()

    async def __aenter__(self) -> PaintClient:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def paint(
        self,
        owner_id: int,
        secret: str,
        r: int,
        g: int,
        b: int,
        x: int,
        y: int,
    ) -> PaintOutcome:
        """Paint one pixel, retrying cooldowns, stale credentials and timeouts."""

        self._check_canvas(x, y)
        self._ensure_layers()
        assert self.credentials is not None
        # Validate byte widths before any network traffic.
        PaintRequest(owner_id=owner_id, x=x, y=y, color=(r, g, b), request_id=0)

        attempts = int(self.settings.paint_attempts)
        credential = await self.credentials.acquire(owner_id, secret)
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            remaining = attempt + 1 < attempts
            try:
                result = await self._submit(owner_id, credential, (r, g, b), x, y)
            except ClientClosed:
                raise
            except (RequestTimeout, TransportError) as exc:
                last_error = exc
                LOGGER.warning("Paint attempt %s/%s failed: %s", attempt + 1, attempts, exc)
                if remaining:
                    await self._backoff(attempt)
                continue

            outcome = result.outcome
            if outcome is Outcome.SUCCESS:
                return PaintOutcome(request_id=result.request_id, outcome=outcome)
            if outcome is Outcome.STALE_CREDENTIAL:
                LOGGER.info("Credential for owner %s rejected; refreshing", owner_id)
                last_error = None
                credential = await self.credentials.acquire(owner_id, secret)
                continue
            if outcome is Outcome.COOLDOWN:
                LOGGER.debug("Owner %s in cooldown (attempt %s/%s)", owner_id, attempt + 1, attempts)
                last_error = None
                if remaining:
                    await self._backoff(attempt)
                continue
            raise UnknownOutcome(result.request_id, result.code)
        raise RetriesExhausted(attempts, last_error)

    async def _submit(
        self,
        owner_id: int,
        credential: str,
        color: tuple[int, int, int],
        x: int,
        y: int,
    ) -> PaintResult:
        assert self.connection is not None
        await self.connection.wait_open(timeout=float(self.settings.open_timeout_seconds))
        request_id = next_request_id()
        # After the 32-bit wrap an id may still belong to a retained frame.
        while request_id in self.connection.pending:
            request_id = next_request_id()
        request = PaintRequest(
            owner_id=owner_id,
            credential=credential,
            x=x,
            y=y,
            color=color,
            request_id=request_id,
        )
        future = self.connection.submit(request.request_id, encode_paint(request))
        try:
            return await future
        except asyncio.CancelledError:
            # The caller gave up on this paint; stop retaining its frame.
            self.connection.pending.abandon(request.request_id)
            raise

    async def _backoff(self, attempt: int) -> None:
        delay = min(
            float(self.settings.retry_max_delay_seconds),
            float(self.settings.retry_base_delay_seconds) * (2**attempt),
        )
        jitter = float(self.settings.retry_jitter)
        if jitter:
            delay *= random.uniform(1 - jitter, 1 + jitter)
        await self.sleep(delay)

    def _check_canvas(self, x: int, y: int) -> None:
        if not 0 <= x < self.settings.canvas_width or not 0 <= y < self.settings.canvas_height:
            raise ValueError(
                f"coordinate ({x}, {y}) outside canvas "
                f"{self.settings.canvas_width}x{self.settings.canvas_height}"
            )


__all__ = ["PaintClient", "PaintOutcome", "default_transport_factory"]
