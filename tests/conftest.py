"""
Shared fixtures: a real SQLite-backed store per test, and fixed timestamps.
"""
from datetime import datetime, timedelta, timezone

import pytest

from src.tracker.config import Settings
from src.tracker.database import create_db_engine, create_session_factory, init_db
from src.tracker.store import LocationStore

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time():
    """Fixed reference time (2024-01-15 10:00 UTC)."""
    return BASE_TIME


@pytest.fixture
def at():
    """Timestamp N minutes after base_time: at(5) -> 10:05 UTC."""
    def _at(minutes: int) -> datetime:
        return BASE_TIME + timedelta(minutes=minutes)
    return _at


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_db_engine(Settings(database_url="sqlite://"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    """Empty LocationStore over the in-memory database."""
    return LocationStore(session_factory)


@pytest.fixture
def fill_store(store, at):
    """Append `n` records one minute apart, starting at base_time."""
    def _fill(n: int):
        return [
            store.append(float(i), float(-i), at(i))
            for i in range(n)
        ]
    return _fill
