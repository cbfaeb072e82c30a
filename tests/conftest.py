from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

import pytest

from recordwatch.core import metrics
from recordwatch.core.settings import Settings
from tests.factories import PORTAL_BASE_URL, FakeClock


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 25, 9, 0, tzinfo=UTC))


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at the fake portal host with Telegram configured."""
    return Settings(
        _env_file=None,
        BTW_USERNAME="doctor",
        BTW_PASSWORD="secret",
        PORTAL_BASE_URL=PORTAL_BASE_URL,
        TG_TOKEN_RESUMES="123:abc",
        TG_CHAT_ID_RESUMES="-100200",
    )
