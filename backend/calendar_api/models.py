from __future__ import annotations
from typing import Optional
from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from .db import Base
from .timestamps import format_timestamp, parse_timestamp


class UTCTimestamp(TypeDecorator):
    """Aware datetimes in Python, fixed-width UTC ISO text in SQLite."""

    impl = String(24)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return format_timestamp(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return parse_timestamp(value)


# Table is created by migrations/0001_create_events.sql, not metadata.create_all
class Event(Base):
    __tablename__ = "events"

    id:       Mapped[str]      = mapped_column(String(36), primary_key=True)
    title:    Mapped[str]      = mapped_column(Text, nullable=False)
    start_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)
    end_at:   Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)
    timezone: Mapped[str]      = mapped_column(Text, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes:    Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color:    Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)

    def __repr__(self) -> str:
        return f"Event(id={self.id!r}, title={self.title!r}, start_at={self.start_at!r})"
