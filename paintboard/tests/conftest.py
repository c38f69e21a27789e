import os

import pytest

from paintboard.config import PaintboardSettings


@pytest.fixture
def settings(monkeypatch, tmp_path) -> PaintboardSettings:
    # Keep the developer's env vars and ./config/paintboard.yaml out of the tests.
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("PAINTBOARD_"):
            monkeypatch.delenv(name)
    return PaintboardSettings(
        batch_interval_ms=1,
        request_timeout_seconds=0.5,
        open_timeout_seconds=1.0,
        reconnect_base_delay_seconds=0.01,
        reconnect_max_delay_seconds=0.04,
    )
