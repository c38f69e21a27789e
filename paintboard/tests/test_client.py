import asyncio

import pytest

from paintboard import client as client_module
from paintboard.client import PaintClient
from paintboard.credentials import CredentialService
from paintboard.errors import ClientClosed, RetriesExhausted, TransportError, UnknownOutcome
from paintboard.protocol import Outcome
from paintboard.tests.fakes import ScriptedTransport, TransportPool, wait_for

TOKEN = "00112233-4455-6677-8899-aabbccddeeff"


class FakeCredentials:
    def __init__(self, tokens=None) -> None:
        self.tokens = list(tokens or [TOKEN])
        self.calls = []

    async def acquire(self, owner_id: int, secret: str) -> str:
        self.calls.append((owner_id, secret))
        if len(self.tokens) > 1:
            return self.tokens.pop(0)
        return self.tokens[0]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(settings, outcomes, *, credentials=None):
    pool = TransportPool(make=lambda: ScriptedTransport(outcomes))
    sleep = RecordingSleep()
    client = PaintClient(
        settings=settings,
        transport_factory=pool,
        credentials=credentials or FakeCredentials(),
        sleep=sleep,
    )
    return client, pool, sleep


@pytest.mark.asyncio
async def test_success_on_first_attempt(settings):
    client, pool, sleep = _client(settings, [Outcome.SUCCESS])
    async with client:
        result = await client.paint(42, "secret", 255, 0, 0, 10, 20)

    assert result.outcome is Outcome.SUCCESS
    request = pool.last.requests[0]
    assert request.request_id == result.request_id
    assert (request.owner_id, request.x, request.y, request.color) == (42, 10, 20, (255, 0, 0))
    assert client.credentials.calls == [(42, "secret")]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_cooldown_is_retried_with_backoff(settings):
    client, pool, sleep = _client(settings, [Outcome.COOLDOWN, Outcome.COOLDOWN, Outcome.SUCCESS])
    async with client:
        result = await client.paint(42, "secret", 1, 2, 3, 0, 0)

    assert result.outcome is Outcome.SUCCESS
    assert sleep.delays == [0.5, 1.0]
    ids = [request.request_id for request in pool.last.requests]
    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert result.request_id == ids[-1]


@pytest.mark.asyncio
async def test_stale_credential_is_refreshed_without_sleeping(settings):
    credentials = FakeCredentials(tokens=[TOKEN, "ffeeddcc-bbaa-9988-7766-554433221100"])
    client, pool, sleep = _client(
        settings, [Outcome.STALE_CREDENTIAL, Outcome.SUCCESS], credentials=credentials
    )
    async with client:
        result = await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert result.outcome is Outcome.SUCCESS
    assert len(credentials.calls) == 2
    assert sleep.delays == []
    first, second = pool.last.requests
    assert first.credential != second.credential


@pytest.mark.asyncio
async def test_unknown_code_is_terminal(settings):
    client, pool, sleep = _client(settings, [0x42])
    async with client:
        with pytest.raises(UnknownOutcome) as excinfo:
            await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert excinfo.value.code == 0x42
    assert len(pool.last.requests) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_cooldown_until_attempts_run_out(settings):
    client, pool, sleep = _client(settings, [Outcome.COOLDOWN] * 5)
    async with client:
        with pytest.raises(RetriesExhausted) as excinfo:
            await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert excinfo.value.attempts == 5
    assert len(pool.last.requests) == 5
    assert sleep.delays == [0.5, 1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_timeout_is_retried(settings):
    settings.request_timeout_seconds = 0.05
    client, pool, sleep = _client(settings, [None, Outcome.SUCCESS])
    async with client:
        result = await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert result.outcome is Outcome.SUCCESS
    assert sleep.delays == [0.5]
    assert len(pool.last.requests) == 2


@pytest.mark.asyncio
async def test_invalid_pixel_is_rejected_before_any_traffic(settings):
    credentials = FakeCredentials()
    client, pool, _ = _client(settings, [Outcome.SUCCESS], credentials=credentials)

    with pytest.raises(ValueError):
        await client.paint(42, "secret", 1, 2, 3, settings.canvas_width, 0)
    with pytest.raises(ValueError):
        await client.paint(42, "secret", 256, 2, 3, 0, 0)
    with pytest.raises(ValueError):
        await client.paint(1 << 24, "secret", 1, 2, 3, 0, 0)

    assert credentials.calls == []
    assert pool.transports == []


@pytest.mark.asyncio
async def test_dummy_transport_paints_end_to_end(settings):
    settings.transport = "dummy"
    client = PaintClient(settings=settings, credentials=FakeCredentials(), sleep=RecordingSleep())
    async with client:
        first = await client.paint(42, "secret", 1, 2, 3, 4, 5)
        second = await client.paint(42, "secret", 1, 2, 3, 6, 7)

    assert first.outcome is Outcome.SUCCESS
    assert second.outcome is Outcome.SUCCESS
    assert second.request_id > first.request_id


@pytest.mark.asyncio
async def test_paint_after_close_raises(settings):
    client, _, _ = _client(settings, [Outcome.SUCCESS])
    await client.start()
    await client.close()

    with pytest.raises(ClientClosed):
        await client.paint(42, "secret", 1, 2, 3, 4, 5)


@pytest.mark.asyncio
async def test_cancelled_paint_is_not_replayed(settings):
    client, pool, _ = _client(settings, [None])
    async with client:
        task = asyncio.create_task(client.paint(42, "secret", 1, 2, 3, 4, 5))
        assert await wait_for(lambda: pool.transports and pool.last.requests)
        assert len(client.connection.pending) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(client.connection.pending) == 0

        first = pool.last
        first.drop()
        assert await wait_for(lambda: len(pool.transports) == 2)
        await client.connection.wait_open(timeout=1.0)
        await asyncio.sleep(0.02)

        assert pool.last is not first
        assert pool.last.sent == []


@pytest.mark.asyncio
async def test_socket_not_opening_in_time_is_backed_off_and_retried(settings):
    settings.open_timeout_seconds = 0.2
    settings.reconnect_base_delay_seconds = 0.3
    settings.reconnect_max_delay_seconds = 1.0
    pool = TransportPool(failures=1, make=lambda: ScriptedTransport([Outcome.SUCCESS]))
    sleep = RecordingSleep()
    client = PaintClient(settings=settings, transport_factory=pool, credentials=FakeCredentials(), sleep=sleep)
    async with client:
        result = await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert result.outcome is Outcome.SUCCESS
    assert sleep.delays == [0.5]
    assert len(pool.transports) == 2


@pytest.mark.asyncio
async def test_socket_never_opening_exhausts_attempts(settings):
    settings.paint_attempts = 2
    settings.open_timeout_seconds = 0.05
    settings.reconnect_base_delay_seconds = 1.0
    settings.reconnect_max_delay_seconds = 1.0
    pool = TransportPool(failures=100)
    sleep = RecordingSleep()
    client = PaintClient(settings=settings, transport_factory=pool, credentials=FakeCredentials(), sleep=sleep)
    async with client:
        with pytest.raises(RetriesExhausted) as excinfo:
            await client.paint(42, "secret", 1, 2, 3, 4, 5)

    assert isinstance(excinfo.value.last_error, TransportError)
    assert sleep.delays == [0.5]


@pytest.mark.asyncio
async def test_request_ids_still_pending_are_skipped(settings, monkeypatch):
    ids = iter([5, 5, 6])
    monkeypatch.setattr(client_module, "next_request_id", lambda: next(ids))
    client, pool, _ = _client(settings, [Outcome.SUCCESS])
    async with client:
        await client.connection.wait_open(timeout=1.0)
        retained = client.connection.pending.register(5, b"retained")

        result = await client.paint(42, "secret", 1, 2, 3, 4, 5)

        assert result.request_id == 6
        assert [request.request_id for request in pool.last.requests] == [6]
        assert 5 in client.connection.pending
    with pytest.raises(ClientClosed):
        await retained


@pytest.mark.asyncio
async def test_close_releases_owned_http_session(settings):
    class ClosingHttp:
        closed = False

        def close(self) -> None:
            self.closed = True

    client = PaintClient(settings=settings, transport_factory=TransportPool(), sleep=RecordingSleep())
    await client.start()
    assert isinstance(client.credentials, CredentialService)
    http = client.credentials.http = ClosingHttp()

    await client.close()

    assert http.closed
