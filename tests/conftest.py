"""Test configuration and fixtures for the akiwatch test suite."""

from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

from akiwatch.storage import InMemoryStateStore
from tests.fakes import FakeClock, FakeNotifier


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


@pytest.fixture(autouse=True)
def log_output():
    """Capture structured log events instead of printing them."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 12, 20, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    store = InMemoryStateStore(clock=clock)
    store.load()
    return store


@pytest.fixture
def notifier():
    return FakeNotifier()
