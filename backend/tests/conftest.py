"""
PURPOSE: Pytest fixtures for Alert Relay tests.

Provides shared test objects including:
- Test configuration settings
- A controllable clock for dedup windows
- A freshly built SignalRouter with the default channel table
- A FastAPI TestClient wired to that router
"""

import pytest
from fastapi.testclient import TestClient

from alert_relay.config.settings import Settings
from alert_relay.core.rate_limit import limiter

TEST_KEY = "test-secret-key"


class FakeClock:
    """Epoch-seconds clock that only moves when a test advances it."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """
    PURPOSE: Clear slowapi's in-memory counters so tests never hit a limit.
    """
    limiter.reset()
    yield


@pytest.fixture
def test_settings():
    """
    PURPOSE: Settings override with test values.

    Provides a Settings object with:
    - A known shared secret
    - Small queue depth so overflow is easy to reach
    - Default dedup windows

    Returns:
        Settings: Configuration object with test values.
    """
    return Settings(
        SECRET_KEY=TEST_KEY,
        APP_ENV="test",
        LOG_LEVEL="DEBUG",
        MAX_QUEUE=5,
        SEEN_TTL_SECONDS=300.0,
        CONTENT_DEDUP_WINDOW_SECONDS=2.0,
        CONTENT_DEDUP_PURGE_MULTIPLE=5,
        C_ALLOWED_ROOMS="",
        D_ALLOWED_AUTHORS="",
    )


@pytest.fixture
def fake_clock():
    """
    PURPOSE: Controllable clock shared by the router and its deduplicators.

    Returns:
        FakeClock: Call to read, .advance(seconds) to move forward.
    """
    return FakeClock()


@pytest.fixture
def signal_router(test_settings, fake_clock):
    """
    PURPOSE: SignalRouter with the default channels a, b, c and d.

    Returns:
        SignalRouter: Fresh router with empty queues and dedup maps.
    """
    from alert_relay.signals.channels import build_router

    return build_router(test_settings, clock=fake_clock)


@pytest.fixture
def app(test_settings, fake_clock):
    """
    PURPOSE: FastAPI application built with test settings and the fake clock.

    Returns:
        FastAPI: Application whose router is reachable at app.state.router.
    """
    from alert_relay.main import create_app

    return create_app(test_settings, clock=fake_clock)


@pytest.fixture
def client(app):
    """
    PURPOSE: Synchronous HTTP client for end-to-end route tests.

    Returns:
        TestClient: Client bound to the test application.
    """
    with TestClient(app) as test_client:
        yield test_client
