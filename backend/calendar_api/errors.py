# backend/calendar_api/errors.py
"""Error taxonomy shared by the store and the HTTP layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .validation import Issue


class CalendarError(Exception):
    """Base class for errors raised by calendar_api."""


class ValidationError(CalendarError):
    """Input failed schema checks. Carries one Issue per problem found."""

    def __init__(self, issues: Sequence["Issue"]):
        self.issues = list(issues)
        summary = "; ".join(
            f"{i.field}: {i.message}" if i.field else i.message for i in self.issues
        )
        super().__init__(summary or "Validation failed")

    def to_dict(self) -> dict:
        return {
            "error": "Validation failed",
            "details": [issue.to_dict() for issue in self.issues],
        }


class NotFound(CalendarError):
    def __init__(self, resource: str, ident: str):
        self.resource = resource
        self.ident = ident
        super().__init__(f"{resource} not found: {ident}")


class StoreFailure(CalendarError):
    """Unexpected persistence error. Details stay in the logs."""


class MigrationError(StoreFailure):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Migration failed: {filename}")
