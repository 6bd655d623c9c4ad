"""Pytest configuration and fixtures for realtime connection tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add parent directory to Python path so we can import cogni_realtime
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from cogni_realtime.config import RealtimeConfig
from cogni_realtime.presentation import reset_shared_managers
from tests.doubles import FakeTokenProvider, FakeTransportFactory, RecordingSleep, make_token


@pytest.fixture
def config() -> RealtimeConfig:
    """Config with three retries and the default 2000 ms / x1.5 backoff."""
    return RealtimeConfig(
        base_url="http://localhost:5000",
        max_reconnect_attempts=3,
        reconnect_delay_ms=2000,
        reconnect_multiplier=1.5,
        connect_timeout_ms=200,
    )


@pytest.fixture
def token() -> str:
    """A valid token expiring in one hour."""
    return make_token()


@pytest.fixture
def token_provider(token) -> FakeTokenProvider:
    """Token provider returning a valid token."""
    return FakeTokenProvider(token)


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    """Factory recording every FakeTransport it builds."""
    return FakeTransportFactory()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement recording retry delays."""
    return RecordingSleep()


@pytest.fixture(autouse=True)
def _clear_shared_managers():
    """Shared managers never leak between tests."""
    yield
    reset_shared_managers()
