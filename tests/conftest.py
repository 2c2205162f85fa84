import os

import pytest
from typer.testing import CliRunner

from quicknote.domain.events.api_events import DomainEvent
from quicknote.domain.models.common import Credential
from quicknote.infrastructure.cache.caching_service import SingleSlotCache
from quicknote.infrastructure.config import settings
from quicknote.infrastructure.events.dispatcher import EventDispatcher
from quicknote.infrastructure.http.connection_pool import ConnectionPool
from quicknote.infrastructure.notion.api_client import NotionApiClient
from quicknote.infrastructure.resilience.rate_limiter import RateLimitManager

NOTION_BASE_URL = "https://api.notion.com"
TEST_TOKEN = Credential("secret_test_token")


class FakeClock:
    """Manually advanced clock for deterministic timing tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def token():
    return TEST_TOKEN


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limits(clock):
    """Isolated manager with a fake clock and no jitter."""
    return RateLimitManager(clock=clock, jitter=lambda: 1.0)


@pytest.fixture
def pages_cache(clock):
    return SingleSlotCache(ttl=300, clock=clock)


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def recorded_events(dispatcher):
    """Collects every event published through the dispatcher fixture."""
    events = []
    dispatcher.subscribe(DomainEvent, events.append)
    return events


@pytest.fixture
def pool():
    return ConnectionPool(base_url=NOTION_BASE_URL)


@pytest.fixture
def api_client(pool, rate_limits, pages_cache, dispatcher):
    return NotionApiClient(
        pool=pool,
        rate_limits=rate_limits,
        pages_cache=pages_cache,
        dispatcher=dispatcher,
    )


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch):
    """Keep tests independent of the developer's environment and settings file."""
    for key in list(os.environ):
        if key.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    yield
    settings.clear_test_config()
