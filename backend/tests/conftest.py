"""Shared fixtures: a controllable clock and isolated stores per test."""
import logging
from datetime import datetime, timedelta, timezone

import pytest

from healthlink.core.config import Settings
from healthlink.models.orm import create_session_factory
from healthlink.services.entity_store import MonotonicClock
from healthlink.services.storage import Storage


class FakeClock:
    """Wall clock that only moves when a test says so."""

    def __init__(self, start: datetime = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def test_settings():
    return Settings(_env_file=None)


@pytest.fixture()
def storage(test_settings, fake_clock):
    """In-memory storage driven by the fake clock."""
    return Storage(test_settings, clock=MonotonicClock(fake_clock))


@pytest.fixture()
def sql_storage(test_settings, fake_clock):
    """Storage backed by an isolated in-memory SQLite database."""
    session_factory = create_session_factory("sqlite:///:memory:")
    store = Storage(test_settings, session_factory=session_factory, clock=MonotonicClock(fake_clock))
    yield store
    store.close()


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
