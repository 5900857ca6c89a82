# backend/calendar_api/occurrences.py
"""
Calendar-grid projection of events.

Events do not repeat, so each event overlapping the window yields exactly one
occurrence whose id is the event id.
"""

from __future__ import annotations

from typing import Iterable

from .models import Event
from .schemas import OccurrenceOut
from .store import EventStore
from .validation import TimeRange


def to_occurrence(ev: Event) -> OccurrenceOut:
    return OccurrenceOut(
        id=ev.id,
        event_id=ev.id,
        title=ev.title,
        start_at=ev.start_at,
        end_at=ev.end_at,
        timezone=ev.timezone,
        location=ev.location,
        notes=ev.notes,
        color=ev.color,
    )


def project(events: Iterable[Event]) -> list[OccurrenceOut]:
    return [to_occurrence(ev) for ev in events]


def list_occurrences(store: EventStore, window: TimeRange) -> list[OccurrenceOut]:
    """Occurrences in [window.start, window.end), ordered by start."""
    return project(store.overlapping(window))
