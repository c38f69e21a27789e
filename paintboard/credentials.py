"""HTTP credential exchange (owner id + long-lived secret -> session token)."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import requests
from requests import Response

from paintboard.config import PaintboardSettings
from paintboard.errors import CredentialError

LOGGER = logging.getLogger(__name__)


@dataclass
class CredentialService:
    """Exchanges an owner identity for a short-lived paint credential."""

    settings: PaintboardSettings
    http: requests.Session = field(default_factory=requests.Session, repr=False)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    async def acquire(self, owner_id: int, secret: str) -> str:
        """Return a credential, retrying with exponential backoff."""

        attempts = int(self.settings.credential_attempts)
        base_delay = self.settings.credential_retry_base_seconds
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                token = await asyncio.to_thread(self._exchange, owner_id, secret)
            except CredentialError as exc:
                last_error = exc
            else:
                LOGGER.debug("Credential acquired for owner %s on attempt %s", owner_id, attempt)
                return token
            if attempt == attempts:
                break
            delay = base_delay * (2 ** (attempt - 1))
            LOGGER.warning(
                "Credential exchange failed for owner %s (attempt %s/%s): %s; retrying in %.2fs",
                owner_id,
                attempt,
                attempts,
                last_error,
                delay,
            )
            await self.sleep(delay)
        raise CredentialError(f"credential exchange failed for owner {owner_id}: {last_error}") from last_error

    def close(self) -> None:
        """Release pooled HTTP connections."""

        self.http.close()

    def _exchange(self, owner_id: int, secret: str) -> str:
        response = self._post({"uid": owner_id, "access_key": secret})
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise CredentialError(f"unexpected content type {content_type!r}")
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise CredentialError("credential endpoint returned invalid JSON") from exc
        token = self._extract_token(body)
        if not token:
            raise CredentialError(f"credential missing from response: {body!r}")
        return token

    def _post(self, payload: dict[str, Any]) -> Response:
        try:
            response = self.http.post(
                str(self.settings.token_url),
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise CredentialError(str(exc)) from exc
        if response.status_code >= 400:
            raise CredentialError(f"credential request failed with status {response.status_code}")
        return response

    @staticmethod
    def _extract_token(body: Any) -> str | None:
        if not isinstance(body, dict):
            return None
        data = body.get("data")
        if not isinstance(data, dict):
            return None
        token = data.get("token")
        if isinstance(token, str):
            return token
        return None


__all__ = ["CredentialService"]
