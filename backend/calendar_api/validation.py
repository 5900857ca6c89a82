# backend/calendar_api/validation.py
"""
Input validation for event payloads and query windows.

Raw request data goes in; typed, normalized inputs come out, or a
ValidationError listing every problem with a machine-readable ErrorCode.
Nothing here touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Annotated, Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from .errors import ValidationError
from .timestamps import parse_timestamp, to_utc

TITLE_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 2000
COLOR_MAX_LENGTH = 32
TIMEZONE_MAX_LENGTH = 64


class ErrorCode(str, Enum):
    REQUIRED = "required"
    EMPTY = "empty"
    TOO_LONG = "too_long"
    INVALID_TYPE = "invalid_type"
    INVALID_TIMESTAMP = "invalid_timestamp"
    INVALID_TIMEZONE = "invalid_timezone"
    INVALID_RANGE = "invalid_range"
    INVALID_BODY = "invalid_body"


@dataclass(frozen=True)
class Issue:
    field: Optional[str]
    code: ErrorCode
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "code": self.code.value, "message": self.message}


# ───────────────────────── field coercers ───────────────────────────
def _text(value: Any, *, max_length: int, required: bool) -> Optional[str]:
    if value is None:
        if required:
            raise PydanticCustomError(ErrorCode.REQUIRED.value, "Field required")
        return None
    if not isinstance(value, str):
        raise PydanticCustomError(ErrorCode.INVALID_TYPE.value, "Must be a string")
    value = value.strip()
    if not value:
        if required:
            raise PydanticCustomError(ErrorCode.EMPTY.value, "Must not be empty")
        return None
    if len(value) > max_length:
        raise PydanticCustomError(
            ErrorCode.TOO_LONG.value,
            "Must be at most {max_length} characters",
            {"max_length": max_length},
        )
    return value


def _timestamp(value: Any) -> datetime:
    if value is None:
        raise PydanticCustomError(ErrorCode.REQUIRED.value, "Field required")
    if isinstance(value, datetime):
        return to_utc(value)
    try:
        return parse_timestamp(value)
    except ValueError:
        raise PydanticCustomError(
            ErrorCode.INVALID_TIMESTAMP.value, "Must be an ISO-8601 timestamp"
        ) from None


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def _timezone(value: Any) -> Optional[str]:
    name = _text(value, max_length=TIMEZONE_MAX_LENGTH, required=False)
    if name is not None and not is_valid_timezone(name):
        raise PydanticCustomError(
            ErrorCode.INVALID_TIMEZONE.value,
            "Unknown timezone '{name}'",
            {"name": name},
        )
    return name


Title = Annotated[str, BeforeValidator(partial(_text, max_length=TITLE_MAX_LENGTH, required=True))]
Timestamp = Annotated[datetime, BeforeValidator(_timestamp)]
TimezoneName = Annotated[Optional[str], BeforeValidator(_timezone)]


def _optional_text(max_length: int):
    return Annotated[
        Optional[str],
        BeforeValidator(partial(_text, max_length=max_length, required=False)),
    ]


Location = _optional_text(LOCATION_MAX_LENGTH)
Notes = _optional_text(NOTES_MAX_LENGTH)
Color = _optional_text(COLOR_MAX_LENGTH)


# ───────────────────────── input models ─────────────────────────────
class EventInput(BaseModel):
    """Mutable fields of an event, shared by create and full-replace update."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: Title
    start_at: Timestamp
    end_at: Timestamp
    timezone: TimezoneName = None
    location: Location = None
    notes: Notes = None
    color: Color = None

    @model_validator(mode="after")
    def _check_interval(self) -> "EventInput":
        if self.end_at <= self.start_at:
            raise PydanticCustomError(
                ErrorCode.INVALID_RANGE.value, "end_at must be after start_at"
            )
        return self


class TimeRange(BaseModel):
    """Half-open query window [start, end)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: Timestamp = Field(alias="from")
    end: Timestamp = Field(alias="to")

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


# ───────────────────────── error translation ────────────────────────
_PYDANTIC_CODES = {
    "missing": ErrorCode.REQUIRED,
    "model_type": ErrorCode.INVALID_BODY,
    "model_attributes_type": ErrorCode.INVALID_BODY,
    "dict_type": ErrorCode.INVALID_BODY,
    "json_invalid": ErrorCode.INVALID_BODY,
}


def issue_from_error(err: dict, *, fields: tuple[str, ...] = ()) -> Issue:
    """Map one pydantic/FastAPI error dict onto an Issue."""
    loc = [part for part in err.get("loc", ()) if part not in ("body", "query")]
    field = str(loc[0]) if loc else None
    kind = err.get("type", "")
    try:
        code = ErrorCode(kind)
    except ValueError:
        code = _PYDANTIC_CODES.get(kind, ErrorCode.INVALID_TYPE)
    if field is not None and fields and field not in fields:
        field = None
    if code is ErrorCode.INVALID_BODY:
        field = None
    elif code is ErrorCode.INVALID_RANGE and field is None:
        field = "end_at"
    return Issue(field=field, code=code, message=err.get("msg", "Invalid value"))


def _raise_from(exc: PydanticValidationError, fields: tuple[str, ...]) -> None:
    issues = [issue_from_error(err, fields=fields) for err in exc.errors()]
    raise ValidationError(issues) from None


_EVENT_FIELDS = tuple(EventInput.model_fields)


def parse_event_input(payload: Any) -> EventInput:
    """Validate a create/update body. Raises ValidationError."""
    if isinstance(payload, EventInput):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError(
            [Issue(field=None, code=ErrorCode.INVALID_BODY, message="Body must be a JSON object")]
        )
    try:
        return EventInput.model_validate(payload)
    except PydanticValidationError as exc:
        _raise_from(exc, _EVENT_FIELDS)


def parse_time_range(start: Any, end: Any) -> TimeRange:
    """Validate the from/to query parameters. Raises ValidationError."""
    try:
        return TimeRange.model_validate({"from": start, "to": end})
    except PydanticValidationError as exc:
        _raise_from(exc, ("from", "to"))
