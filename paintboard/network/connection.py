"""Connection manager that owns the paint socket lifecycle.

One transport session exists at a time. Inbound transmissions are decoded by
a single receive loop per session; outbound paint frames go through the batch
scheduler, while heartbeat pongs and replays are written straight to the
transport. When the session drops, a single reconnect loop backs off
exponentially until a new session opens, and every frame still held by the
pending table is replayed before anything newly submitted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Optional

from paintboard.config import PaintboardSettings
from paintboard.errors import ClientClosed, ProtocolDesyncError, TransportError
from paintboard.network.batch import BatchScheduler
from paintboard.network.pending import PendingTable
from paintboard.network.state import ConnectionState, ConnectionTracker
from paintboard.network.transport.base import BaseTransport
from paintboard.protocol import HEARTBEAT_PONG, HeartbeatPing, PaintResult, iter_frames

LOGGER = logging.getLogger(__name__)


class Connection:
    """Maintains the paint socket and routes frames between it and the callers."""

    def __init__(
        self,
        settings: PaintboardSettings,
        transport_factory: Callable[[PaintboardSettings], BaseTransport],
        *,
        pending: Optional[PendingTable] = None,
        batch: Optional[BatchScheduler] = None,
        on_connecting: Optional[Callable[[int], Awaitable[None]]] = None,
        on_connect_failed: Optional[Callable[[int, Exception, float], Awaitable[None]]] = None,
        on_ready: Optional[Callable[[], Awaitable[None]]] = None,
        on_disconnect: Optional[Callable[[Exception], Awaitable[None]]] = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        jitter: float | None = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self.pending = pending or PendingTable(timeout=float(settings.request_timeout_seconds))
        self.batch = batch or BatchScheduler(interval=settings.batch_interval_seconds)
        self.tracker = ConnectionTracker()
        self._base_delay = float(base_delay if base_delay is not None else settings.reconnect_base_delay_seconds)
        self._max_delay = float(max_delay if max_delay is not None else settings.reconnect_max_delay_seconds)
        self._jitter = float(jitter if jitter is not None else settings.reconnect_jitter)
        self._on_connecting = on_connecting
        self._on_connect_failed = on_connect_failed
        self._on_ready = on_ready
        self._on_disconnect = on_disconnect
        self._transport: Optional[BaseTransport] = None
        self._connect_task: Optional[asyncio.Task[None]] = None
        self._recv_task: Optional[asyncio.Task[None]] = None
        self._flush_task: Optional[asyncio.Task[None]] = None
        self._opened = asyncio.Event()
        self._stopped = False

    @property
    def state(self) -> ConnectionState:
        return self.tracker.state

    @property
    def is_open(self) -> bool:
        return self._transport is not None and self.tracker.state is ConnectionState.OPEN

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def start(self) -> None:
        """Begin connecting in the background if no session exists yet."""

        if self._stopped:
            raise ClientClosed("paint connection stopped")
        if self._transport is None:
            self._ensure_connecting(delay_first=False)

    async def wait_open(self, timeout: float | None = None) -> None:
        """Wait until a session is open and its replay has been sent."""

        await self.start()
        if not self._opened.is_set():
            try:
                if timeout:
                    await asyncio.wait_for(self._opened.wait(), timeout=timeout)
                else:
                    await self._opened.wait()
            except asyncio.TimeoutError as exc:
                raise TransportError(f"paint socket not open after {timeout:.2f}s") from exc
        if self._stopped:
            raise ClientClosed("paint connection stopped")

    async def stop(self) -> None:
        """Close the session, stop background loops and fail waiting callers."""

        if self._stopped and self.tracker.state is ConnectionState.CLOSED:
            return
        self._stopped = True
        self._try_transition(ConnectionState.CLOSING)
        current = asyncio.current_task()
        for task in (self._connect_task, self._recv_task, self._flush_task):
            if task and task is not current and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._connect_task = None
        self._recv_task = None
        self._flush_task = None
        transport, self._transport = self._transport, None
        if transport:
            await self._close_transport(transport)
        self._try_transition(ConnectionState.CLOSED)
        self.batch.clear()
        self.pending.fail_all(ClientClosed("paint client closed"))
        # Wake wait_open() callers so they observe the stop.
        self._opened.set()
        LOGGER.info("Paint connection stopped")

    def submit(self, request_id: int, frame: bytes) -> asyncio.Future[PaintResult]:
        """Register a frame for correlation/resend and queue it for the next flush."""

        if self._stopped:
            raise ClientClosed("paint connection stopped")
        future = self.pending.register(request_id, frame)
        self.batch.enqueue(frame)
        return future

    def _ensure_connecting(self, *, delay_first: bool) -> None:
        task = self._connect_task
        if task and not task.done():
            return
        self._connect_task = asyncio.create_task(
            self._connect_loop(delay_first=delay_first),
            name="paint-connect",
        )

    def _backoff_delay(self, index: int) -> float:
        delay = min(self._max_delay, self._base_delay * (2**index))
        if self._jitter:
            delay *= random.uniform(1 - self._jitter, 1 + self._jitter)
        return max(0.0, delay)

    async def _connect_loop(self, *, delay_first: bool) -> None:
        attempt = 0
        sleeps = 0
        while not self._stopped:
            if attempt or delay_first:
                delay = self._backoff_delay(sleeps)
                sleeps += 1
                LOGGER.info("Reconnecting to paint socket in %.2fs", delay)
                await asyncio.sleep(delay)
                if self._stopped:
                    return
            attempt += 1
            if self._on_connecting:
                await self._safe_call(self._on_connecting, attempt)
            try:
                transport = self._transport_factory(self._settings)
                await transport.connect()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Paint socket connect failed (attempt %s): %s", attempt, exc)
                if self._on_connect_failed:
                    await self._safe_call(self._on_connect_failed, attempt, exc, self._backoff_delay(sleeps))
                continue
            if self._stopped:
                await self._close_transport(transport)
                return
            LOGGER.info("Paint socket connected after %s attempt(s)", attempt)
            await self._on_open(transport)
            if self._is_current(transport):
                return

    async def _on_open(self, transport: BaseTransport) -> None:
        self._transport = transport
        self.tracker.transition(ConnectionState.OPEN)
        self._recv_task = asyncio.create_task(self._receive_loop(transport), name="paint-recv")

        # Buffered frames are all retained in the pending table; the replay covers them.
        dropped = self.batch.clear()
        frames = self.pending.drain_all()
        if frames:
            LOGGER.info("Replaying %s unconfirmed frame(s) (%s were still buffered)", len(frames), dropped)
        for frame in frames:
            try:
                await self._transmit(transport, frame)
            except TransportError:
                return
        if not self._is_current(transport):
            return

        self._flush_task = asyncio.create_task(
            self.batch.run(partial(self._flush_send, transport), partial(self._is_current, transport)),
            name="paint-flush",
        )
        self._opened.set()
        if self._on_ready:
            await self._safe_call(self._on_ready)

    async def _on_message(self, transport: BaseTransport, data: bytes) -> None:
        try:
            for event in iter_frames(data):
                if isinstance(event, HeartbeatPing):
                    await self._send_pong(transport)
                else:
                    self.pending.resolve(event)
        except ProtocolDesyncError as exc:
            LOGGER.warning("Discarding rest of inbound transmission (%s bytes): %s", len(data), exc)

    async def _on_close(self, transport: BaseTransport, exc: Exception) -> None:
        if transport is not self._transport:
            return
        LOGGER.warning("Paint socket closed, will reconnect: %s", exc)
        self._transport = None
        self._opened.clear()
        self._try_transition(ConnectionState.CLOSED)
        current = asyncio.current_task()
        for task in (self._recv_task, self._flush_task):
            if task and task is not current and not task.done():
                task.cancel()
        self._recv_task = None
        self._flush_task = None
        await self._close_transport(transport)
        if self._on_disconnect:
            await self._safe_call(self._on_disconnect, exc)
        if not self._stopped:
            self._ensure_connecting(delay_first=True)

    async def _receive_loop(self, transport: BaseTransport) -> None:
        while self._is_current(transport):
            try:
                data = await transport.receive()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                await self._on_close(transport, exc)
                return
            await self._on_message(transport, data)

    async def _send_pong(self, transport: BaseTransport) -> None:
        if not self._is_current(transport):
            return
        try:
            await self._transmit(transport, HEARTBEAT_PONG)
        except TransportError:
            LOGGER.debug("Heartbeat pong not sent; session already closing")

    async def _flush_send(self, transport: BaseTransport, data: bytes) -> None:
        try:
            await self._transmit(transport, data)
        except TransportError:
            LOGGER.debug("Batch flush lost with the session; frames stay queued for replay")

    async def _transmit(self, transport: BaseTransport, data: bytes) -> None:
        try:
            await transport.send(data)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            await self._on_close(transport, exc)
            raise TransportError(str(exc)) from exc

    def _is_current(self, transport: BaseTransport) -> bool:
        return transport is self._transport and self.tracker.state is ConnectionState.OPEN

    def _try_transition(self, state: ConnectionState) -> None:
        try:
            self.tracker.transition(state)
        except ValueError:
            LOGGER.debug(
                "Ignoring invalid connection transition %s -> %s",
                self.tracker.state.value,
                state.value,
            )

    async def _close_transport(self, transport: BaseTransport) -> None:
        try:
            await transport.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress transport close error", exc_info=True)

    async def _safe_call(self, fn: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await fn(*args)
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress connection callback error", exc_info=True)


__all__ = ["Connection"]
