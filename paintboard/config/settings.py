"""Paintboard client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/paintboard.yaml"),
    Path("./config/paintboard.yml"),
)


class PaintboardSettings(BaseSettings):
    """Validated settings for the paintboard protocol client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="PAINTBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoints
    ws_url: AnyUrl = Field(
        default="wss://paintboard.luogu.me/api/paintboard/ws",
        description="Binary paint socket endpoint.",
    )
    token_url: AnyUrl = Field(
        default="https://paintboard.luogu.me/api/auth/gettoken",
        description="Credential exchange endpoint (owner id + secret -> token).",
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation; dummy answers every paint locally.",
    )

    # Credential exchange
    http_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout for a single credential exchange request.",
    )
    credential_attempts: PositiveInt = Field(
        default=3,
        description="Attempts per credential exchange before giving up.",
    )
    credential_retry_base_ms: PositiveInt = Field(
        default=200,
        description="Base backoff (milliseconds) between credential attempts.",
    )

    # Batching + requests
    batch_interval_ms: PositiveInt = Field(
        default=20,
        description="Flush tick for the outbound frame buffer.",
    )
    request_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds a caller waits for a paint result before timing out locally.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds a caller waits for the socket to open per attempt.",
    )
    paint_attempts: PositiveInt = Field(
        default=5,
        description="Maximum submissions per paint() call.",
    )
    retry_base_delay_seconds: PositiveFloat = Field(
        default=0.5,
        description="Base delay for cooldown/timeout retry backoff.",
    )
    retry_max_delay_seconds: PositiveFloat = Field(
        default=30.0,
        description="Maximum delay for cooldown/timeout retry backoff.",
    )
    retry_jitter: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Jitter factor applied to retry backoff (0.0-1.0).",
    )

    # Reconnection
    reconnect_base_delay_seconds: PositiveFloat = Field(
        default=0.5,
        description="Base delay for transport reconnection backoff.",
    )
    reconnect_max_delay_seconds: PositiveFloat = Field(
        default=30.0,
        description="Maximum delay for transport reconnection backoff.",
    )
    reconnect_jitter: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Jitter factor applied to reconnection backoff (0.0-1.0).",
    )

    # Canvas
    canvas_width: PositiveInt = Field(
        default=1000,
        le=0xFFFF,
        description="Canvas width in pixels; x must be below this.",
    )
    canvas_height: PositiveInt = Field(
        default=600,
        le=0xFFFF,
        description="Canvas height in pixels; y must be below this.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for entry-point scripts.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PaintboardSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._file_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[PaintboardSettings] | None = None) -> Dict[str, Any]:
        for path in PaintboardSettings._resolve_candidate_paths():
            data = PaintboardSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("PAINTBOARD_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read paintboard config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid paintboard config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Paintboard config file {path} must contain a mapping at top level.")
        return raw

    @property
    def batch_interval_seconds(self) -> float:
        return self.batch_interval_ms / 1000.0

    @property
    def credential_retry_base_seconds(self) -> float:
        return self.credential_retry_base_ms / 1000.0


@lru_cache()
def get_settings() -> PaintboardSettings:
    """Return memoized client settings."""

    return PaintboardSettings()
