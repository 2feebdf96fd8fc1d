"""
Global pytest fixtures for the LinkTrack test suite.

Responsibilities:
    - Provide fresh FastAPI TestClients via the app factory for integration tests
    - Provide isolated in-memory Storage, VisitRecorder, AnalyticsAggregator and
      LinkManager fixtures for direct testing
    - Provide a deterministic clock so visit ordering is predictable

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from linktrack.analytics.analytics import AnalyticsAggregator
from linktrack.analytics.recorder import VisitRecorder
from linktrack.config import load_settings
from linktrack.manager.link_manager import LinkManager
from linktrack.manager.strategies import BaseStrategy
from linktrack.storage.storage import Storage

CHROME_WINDOWS_UAS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/92.0.4515.107 Safari/537.36",
    "Mozilla/5.0 (Windows NT 6.1; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/93.0.4577.63 Safari/537.36",
]


class FakeClock:
    """Returns strictly increasing aware timestamps, one minute apart."""

    def __init__(self, start=None, step=timedelta(minutes=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


class FixedStrategy(BaseStrategy):
    """Always hands out the same id (forces collisions)."""

    def __init__(self, value: str = "fixed1"):
        self.value = value

    def generate(self, *, length=None) -> str:
        return self.value


def make_settings(**overrides):
    cfg = load_settings()
    cfg.STORAGE_BACKEND = "memory"
    cfg.DB_AUTO_MIGRATE = False
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def recorder(storage: Storage, clock: FakeClock) -> VisitRecorder:
    """Recorder keyed by user agent, so tests can vary visitors without varying IPs."""
    return VisitRecorder(storage, visitor_key_mode="user_agent", clock=clock)


@pytest.fixture
def aggregator(storage: Storage) -> AnalyticsAggregator:
    return AnalyticsAggregator(storage)


@pytest.fixture
def manager(storage: Storage, recorder: VisitRecorder, aggregator: AnalyticsAggregator) -> LinkManager:
    return LinkManager(storage=storage, recorder=recorder, aggregator=aggregator)


@pytest.fixture
def client() -> TestClient:
    """
    Fresh TestClient with a new app instance and default (IP-keyed) settings.

    TestClient reports every request as coming from host "testclient".
    """
    return TestClient(create_app(storage=Storage(), settings=make_settings()))


@pytest.fixture
def ua_client() -> TestClient:
    """TestClient whose app counts unique visitors by user agent."""
    return TestClient(create_app(storage=Storage(), settings=make_settings(VISITOR_KEY="user_agent")))


@pytest.fixture
def chrome_uas():
    """Three distinct Windows/Chrome user agents."""
    return list(CHROME_WINDOWS_UAS)


@pytest.fixture
def fixed_strategy() -> FixedStrategy:
    return FixedStrategy("fixed1")


@pytest.fixture
def settings_factory():
    """Build a memory-backed settings object with attribute overrides."""
    return make_settings
