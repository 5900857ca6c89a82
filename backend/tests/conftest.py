"""Shared fixtures: settings on tmp_path, an opened database, store and client."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from calendar_api.config import Settings
from calendar_api.db import Database
from calendar_api.main import create_app
from calendar_api.migrate import run_migrations
from calendar_api.store import EventStore


class FakeClock:
    """Deterministic clock; advances only when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def database(settings):
    with Database(settings.db_url) as db:
        run_migrations(db.engine)
        yield db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(database, clock):
    with database.session() as session:
        yield EventStore(session, clock=clock)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


def make_event(title="Standup", start="2024-05-01T10:00:00Z", end="2024-05-01T11:00:00Z", **extra):
    payload = {"title": title, "start_at": start, "end_at": end}
    payload.update(extra)
    return payload
