# backend/calendar_api/schemas.py
from __future__ import annotations
from typing import Annotated, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, PlainSerializer

from .timestamps import format_timestamp

# Serialized as 2024-05-01T10:00:00.000Z, the same text the store keeps
UTCDateTime = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str)]


class EventOut(BaseModel):
    """Response schema for an event row."""
    model_config = ConfigDict(from_attributes=True)  # allow from ORM

    id: str
    title: str
    start_at: UTCDateTime
    end_at:   UTCDateTime
    timezone: str
    location: Optional[str] = None
    notes:    Optional[str] = None
    color:    Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class OccurrenceOut(BaseModel):
    """One render-ready slot of an event inside a query window."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    title: str
    start_at: UTCDateTime
    end_at:   UTCDateTime
    timezone: str
    location: Optional[str] = None
    notes:    Optional[str] = None
    color:    Optional[str] = None


class HealthOut(BaseModel):
    ok: bool
    time: str
