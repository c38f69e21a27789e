import pytest
import requests

from paintboard.credentials import CredentialService
from paintboard.errors import CredentialError


class FakeResponse:
    def __init__(self, body=None, *, status_code=200, content_type="application/json; charset=utf-8"):
        self._body = body
        self.status_code = status_code
        self.headers = {"content-type": content_type}

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeHttp:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _service(settings, *responses):
    http = FakeHttp(*responses)
    sleep = RecordingSleep()
    return CredentialService(settings=settings, http=http, sleep=sleep), http, sleep


@pytest.mark.asyncio
async def test_acquire_posts_owner_and_secret(settings):
    service, http, sleep = _service(settings, FakeResponse({"data": {"token": "abc-123"}}))

    assert await service.acquire(42, "s3cret") == "abc-123"

    url, kwargs = http.calls[0]
    assert url == str(settings.token_url)
    assert kwargs["json"] == {"uid": 42, "access_key": "s3cret"}
    assert kwargs["timeout"] == settings.http_timeout_seconds
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_acquire_retries_network_errors(settings):
    service, http, sleep = _service(
        settings,
        requests.ConnectionError("refused"),
        FakeResponse({"errorMessage": "busy"}, status_code=503),
        FakeResponse({"data": {"token": "abc-123"}}),
    )

    assert await service.acquire(42, "s3cret") == "abc-123"
    assert len(http.calls) == 3
    assert sleep.delays == [0.2, 0.4]


@pytest.mark.asyncio
async def test_acquire_gives_up_after_configured_attempts(settings):
    service, http, sleep = _service(settings, *[requests.Timeout("slow")] * 3)

    with pytest.raises(CredentialError) as excinfo:
        await service.acquire(42, "s3cret")

    assert isinstance(excinfo.value.__cause__, CredentialError)
    assert len(http.calls) == 3
    assert sleep.delays == [0.2, 0.4]


@pytest.mark.asyncio
async def test_non_json_response_is_rejected(settings):
    settings.credential_attempts = 1
    service, _, _ = _service(settings, FakeResponse("<html>", content_type="text/html"))

    with pytest.raises(CredentialError):
        await service.acquire(42, "s3cret")


@pytest.mark.asyncio
async def test_invalid_json_body_is_rejected(settings):
    settings.credential_attempts = 1
    service, _, _ = _service(settings, FakeResponse(ValueError("bad json")))

    with pytest.raises(CredentialError):
        await service.acquire(42, "s3cret")


@pytest.mark.asyncio
async def test_missing_token_is_rejected(settings):
    settings.credential_attempts = 1
    service, _, _ = _service(settings, FakeResponse({"data": {"errorType": "INVALID_ACCESS_KEY"}}))

    with pytest.raises(CredentialError) as excinfo:
        await service.acquire(42, "s3cret")

    assert "credential missing" in str(excinfo.value.__cause__)


def test_close_releases_http_session(settings):
    service, http, _ = _service(settings)

    service.close()

    assert http.closed
