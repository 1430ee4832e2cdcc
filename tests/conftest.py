from __future__ import annotations

import pytest

from objhttp.common.config import Settings, get_settings
from objhttp.infra.transport.session import reset_transport
from tests.aws_vectors import SIGNING_TIME


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch, tmp_path):
    # Keep a developer's .env out of the settings under test.
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()  # type: ignore[attr-defined]
    reset_transport()
    yield
    reset_transport()
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def settings() -> Settings:
    return Settings(UPLOAD_CHUNK_SIZE=256, ENABLE_METRICS=False, LOG_FORMAT="plain")


@pytest.fixture
def clock():
    return lambda: SIGNING_TIME
