# backend/calendar_api/timestamps.py
"""UTC timestamp helpers shared by the store, validation and API layers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from dateutil.parser import isoparse as iso_parse

ONE_MILLISECOND = timedelta(milliseconds=1)


def _truncate_ms(dt: datetime) -> datetime:
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime with millisecond
    precision. Naive values are taken to be UTC already.

    Raises ValueError on anything that is not a well-formed timestamp.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp must be a non-empty ISO-8601 string")
    try:
        dt = iso_parse(value.strip())
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}") from exc
    return _truncate_ms(dt)


def format_timestamp(dt: datetime) -> str:
    """Fixed-width UTC form, e.g. 2024-05-01T10:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    utc = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def to_utc(dt: datetime) -> datetime:
    """Normalize an already-parsed datetime the same way parse_timestamp does."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return _truncate_ms(dt.astimezone(timezone.utc))


def utcnow() -> datetime:
    return _truncate_ms(datetime.now(timezone.utc))
