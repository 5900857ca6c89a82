"""Tests for EventStore CRUD against a migrated SQLite file."""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from calendar_api.errors import NotFound, StoreFailure, ValidationError
from calendar_api.store import EventStore
from calendar_api.timestamps import format_timestamp
from conftest import make_event

FIELDS = ("id", "title", "start_at", "end_at", "timezone", "location", "notes", "color", "created_at", "updated_at")


def _snapshot(ev):
    return {name: getattr(ev, name) for name in FIELDS}


class TestCreate:
    def test_generates_id_and_equal_timestamps(self, store, clock):
        ev = store.create(make_event())
        assert uuid.UUID(ev.id)
        assert ev.created_at == ev.updated_at == clock.now

    def test_ids_are_unique(self, store):
        ids = {store.create(make_event()).id for _ in range(5)}
        assert len(ids) == 5

    def test_default_timezone(self, store):
        assert store.create(make_event()).timezone == "UTC"

    def test_configured_default_timezone(self, database, clock):
        with database.session() as session:
            ev = EventStore(session, default_timezone="Europe/Paris", clock=clock).create(make_event())
        assert ev.timezone == "Europe/Paris"

    def test_blank_optionals_stored_as_null(self, store, database):
        ev = store.create(make_event(location="", notes="  ", color=None))
        with database.engine.connect() as conn:
            row = conn.execute(
                text("SELECT location, notes, color FROM events WHERE id = :id"), {"id": ev.id}
            ).one()
        assert tuple(row) == (None, None, None)

    def test_rejects_invalid_input(self, store):
        with pytest.raises(ValidationError):
            store.create(make_event(title=""))
        assert store.list() == []

    def test_round_trip(self, store, database):
        created = store.create(
            make_event(
                title="Dentist",
                start="2024-05-01T12:30:00.250+02:00",
                end="2024-05-01T13:30:00+02:00",
                timezone="Europe/Berlin",
                location="Main St 1",
                notes="Bring card",
                color="#ff8800",
            )
        )
        with database.session() as other:
            fetched = EventStore(other).get(created.id)
        assert _snapshot(fetched) == _snapshot(created)
        assert format_timestamp(fetched.start_at) == "2024-05-01T10:30:00.250Z"


class TestGet:
    def test_unknown_id(self, store):
        with pytest.raises(NotFound):
            store.get("missing")


class TestUpdate:
    def test_replaces_fields_and_bumps_updated_at(self, store, clock):
        ev = store.create(make_event(location="Room 1", color="#000"))
        created_at = ev.created_at
        clock.advance(minutes=5)

        updated = store.update(ev.id, make_event(title="Retro", start="2024-05-02T10:00:00Z", end="2024-05-02T11:00:00Z"))

        assert updated.id == ev.id
        assert updated.created_at == created_at
        assert updated.updated_at > created_at
        assert updated.title == "Retro"
        # full replace: omitted optionals are cleared
        assert updated.location is None
        assert updated.color is None

    def test_updated_at_increases_even_if_clock_stalls(self, store, clock):
        ev = store.create(make_event())
        first = store.update(ev.id, make_event(title="A")).updated_at
        second = store.update(ev.id, make_event(title="B")).updated_at
        assert ev.created_at < first < second

    def test_unknown_id(self, store):
        with pytest.raises(NotFound):
            store.update("missing", make_event())

    def test_invalid_input(self, store):
        ev = store.create(make_event())
        with pytest.raises(ValidationError):
            store.update(ev.id, make_event(end="2024-05-01T09:00:00Z"))
        assert store.get(ev.id).end_at == datetime(2024, 5, 1, 11, tzinfo=timezone.utc)


class TestDelete:
    def test_removes_row(self, store):
        ev = store.create(make_event())
        store.delete(ev.id)
        with pytest.raises(NotFound):
            store.get(ev.id)

    def test_unknown_id_is_not_found(self, store):
        with pytest.raises(NotFound):
            store.delete(str(uuid.uuid4()))


class TestList:
    def test_sorted_by_start(self, store):
        for start, end in [
            ("2024-05-03T09:00:00Z", "2024-05-03T10:00:00Z"),
            ("2024-05-01T09:00:00Z", "2024-05-01T10:00:00Z"),
            ("2024-05-02T09:00:00+05:00", "2024-05-02T10:00:00+05:00"),
        ]:
            store.create(make_event(start=start, end=end))
        starts = [ev.start_at for ev in store.list()]
        assert starts == sorted(starts)
        assert len(starts) == 3


class TestFailures:
    def test_database_errors_become_store_failure(self, store, database):
        with database.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE events")
        with pytest.raises(StoreFailure) as excinfo:
            store.list()
        assert isinstance(excinfo.value.__cause__, OperationalError)
