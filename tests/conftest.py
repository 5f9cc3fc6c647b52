"""Shared test fixtures for the updown test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from updown.cache import MemoryCache
from updown.config import Settings
from updown.models.probe import ProbeResult, ProbeStatus, ProbeTarget
from updown.state import AppState

TEST_API_KEY = "test-api-key"


class FakeClock:
    """Manually advanced UTC clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeProber:
    """Prober stand-in: answers from a url → status code table and records calls.

    A status code of 0 (the default for unknown URLs) simulates a network failure.
    """

    def __init__(self) -> None:
        self.status_codes: dict[str, int] = {}
        self.calls: list[ProbeTarget] = []

    @property
    def probed_urls(self) -> list[str]:
        return [target.url for target in self.calls]

    async def probe(self, target: ProbeTarget) -> ProbeResult:
        self.calls.append(target)
        code = self.status_codes.get(target.url, 0)
        if code == 0:
            return ProbeResult(
                type=target.kind,
                url=target.url,
                status=ProbeStatus.DOWN,
                status_code=0,
                status_text="Network Error: connection failed",
            )
        return ProbeResult(
            type=target.kind,
            url=target.url,
            status=ProbeStatus.UP if 200 <= code <= 399 else ProbeStatus.DOWN,
            status_code=code,
        )


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key=TEST_API_KEY)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def memory_cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture()
def app_state(settings: Settings, memory_cache: MemoryCache, fake_prober: FakeProber) -> AppState:
    """AppState wired with an in-memory fake-clock cache and a fake prober."""
    return AppState(settings=settings, cache=memory_cache, prober=fake_prober)
