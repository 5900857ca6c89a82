"""Event store: CRUD and range queries over the events table."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Union

from loguru import logger
from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import DEFAULT_TIMEZONE
from .errors import NotFound, StoreFailure
from .models import Event
from .timestamps import ONE_MILLISECOND, utcnow
from .validation import EventInput, TimeRange, parse_event_input

EventData = Union[EventInput, dict[str, Any]]


class EventStore:
    """
    Manages Event rows for one session.

    Every public method is one committed statement (or a read). Raw dicts are
    validated before anything is sent to the database.
    """

    def __init__(
        self,
        session: Session,
        *,
        default_timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.default_timezone = default_timezone
        self.clock = clock

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Event store failed to {}", action)
            raise StoreFailure(f"Failed to {action}") from exc

    def _next_updated_at(self, previous: datetime) -> datetime:
        now = self.clock()
        if now <= previous:
            now = previous + ONE_MILLISECOND
        return now

    def _apply(self, ev: Event, data: EventInput) -> None:
        ev.title = data.title
        ev.start_at = data.start_at
        ev.end_at = data.end_at
        ev.timezone = data.timezone or self.default_timezone
        ev.location = data.location
        ev.notes = data.notes
        ev.color = data.color

    def list(self) -> list[Event]:
        """All events, earliest first."""
        q = select(Event).order_by(Event.start_at.asc(), Event.created_at.asc())
        with self._guard("list events"):
            return list(self.session.execute(q).scalars().all())

    def get(self, event_id: str) -> Event:
        with self._guard("load event"):
            ev = self.session.get(Event, event_id)
        if ev is None:
            raise NotFound("Event", event_id)
        return ev

    def create(self, data: EventData) -> Event:
        data = parse_event_input(data)
        now = self.clock()
        ev = Event(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        self._apply(ev, data)
        with self._guard("create event"):
            self.session.add(ev)
            self.session.commit()
        logger.debug("Created event {}: {}", ev.id, ev.title[:50])
        return ev

    def update(self, event_id: str, data: EventData) -> Event:
        """Replace every mutable field; id and created_at are kept."""
        data = parse_event_input(data)
        ev = self.get(event_id)
        self._apply(ev, data)
        ev.updated_at = self._next_updated_at(ev.updated_at)
        with self._guard("update event"):
            self.session.commit()
        logger.debug("Updated event {}", ev.id)
        return ev

    def delete(self, event_id: str) -> None:
        with self._guard("delete event"):
            result = self.session.execute(delete(Event).where(Event.id == event_id))
            self.session.commit()
        if result.rowcount == 0:
            raise NotFound("Event", event_id)
        logger.debug("Deleted event {}", event_id)

    def overlapping(self, window: TimeRange) -> list[Event]:
        """Events intersecting the half-open window, earliest first."""
        if window.is_empty:
            return []
        q = (
            select(Event)
            .where(and_(Event.start_at < window.end, Event.end_at > window.start))
            .order_by(Event.start_at.asc(), Event.created_at.asc())
        )
        with self._guard("query events in range"):
            return list(self.session.execute(q).scalars().all())
