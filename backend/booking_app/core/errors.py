"""
Centralized error handling for booking/scheduling failures.

Every domain failure is a BookingError subclass with a stable code, so callers get a
distinct, actionable reason instead of a generic bad request. Storage and transport
errors are not BookingErrors and surface as opaque 500s.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_UNPROCESSABLE = 422


class ViolationKind(str, Enum):
    """Why a candidate start time was rejected before commit. Checked in this order."""

    INSUFFICIENT_NOTICE = "insufficient_notice"
    BLACKOUT_DATE = "blackout_date"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    SLOT_CONFLICT = "slot_conflict"


VIOLATION_MESSAGES: dict[ViolationKind, str] = {
    ViolationKind.INSUFFICIENT_NOTICE: "Booking violates minimum notice requirement",
    ViolationKind.BLACKOUT_DATE: "Date is blocked",
    ViolationKind.OUTSIDE_WORKING_HOURS: "Outside working hours",
    ViolationKind.SLOT_CONFLICT: "Slot conflicts with existing booking",
}


class BookingError(Exception):
    """Base for all domain failures. `code` is stable and safe to show to API clients."""

    code = "booking_error"
    default_message = "Booking failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ConstraintViolation(BookingError):
    """Advisory, pre-commit rejection. `kind` says which availability rule failed."""

    def __init__(self, kind: ViolationKind, message: str | None = None):
        self.kind = ViolationKind(kind)
        self.code = self.kind.value
        super().__init__(message or VIOLATION_MESSAGES[self.kind])


class SlotAlreadyBooked(BookingError):
    """Authoritative conflict: storage refused the commit. Re-fetch slots and resubmit."""

    code = "slot_already_booked"
    default_message = "Slot already booked"


class ConcurrentModification(BookingError):
    """The booking changed since the caller read it. Re-fetch the booking and resubmit."""

    code = "concurrent_modification"
    default_message = "Booking was modified by another request"


class OrganizerNotFound(BookingError):
    code = "organizer_not_found"
    default_message = "Organizer not found"


class BookingNotFound(BookingError):
    code = "booking_not_found"
    default_message = "Booking not found"


class InvalidAction(BookingError):
    code = "invalid_action"
    default_message = "Invalid action"


class InvalidRequest(BookingError):
    """Request payload failed validation. `errors` is a list of {field, message}."""

    code = "invalid_request"
    default_message = "Invalid request"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None):
        self.errors = list(errors)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code). First match wins.
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

BOOKING_ERROR_RULES: list[tuple[type[BookingError], int]] = [
    (SlotAlreadyBooked, STATUS_CONFLICT),
    (ConcurrentModification, STATUS_CONFLICT),
    (OrganizerNotFound, STATUS_NOT_FOUND),
    (BookingNotFound, STATUS_NOT_FOUND),
    (InvalidRequest, STATUS_UNPROCESSABLE),
    (ConstraintViolation, STATUS_BAD_REQUEST),
    (InvalidAction, STATUS_BAD_REQUEST),
]


def booking_error_to_http(exc: BookingError) -> HTTPException:
    """
    Map a domain error into an HTTPException whose detail carries the stable code.
    Uses BOOKING_ERROR_RULES; unknown BookingError subclasses fall back to 400.
    """
    for error_type, status_code in BOOKING_ERROR_RULES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_dict())
    return HTTPException(status_code=STATUS_BAD_REQUEST, detail=exc.to_dict())
