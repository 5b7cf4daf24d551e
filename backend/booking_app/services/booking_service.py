"""
Bookings: open slots for the public page, invitee booking, organizer listing and
organizer reschedule/cancel. Every write goes through BookingConflictResolver.

`organizer_id` is always passed in explicitly: from the URL on the public path,
from the authenticated caller on the organizer path.
"""
import logging
from typing import Any

from booking_app.config import settings
from booking_app.core.clock import Clock, is_valid_timezone, parse_instant, utc_now
from booking_app.core.constants import (
    ACTION_CANCEL,
    ACTION_RESCHEDULE,
    BOOKING_ACTIONS,
    BOOKING_STATUSES,
    STATUS_CONFIRMED,
)
from booking_app.core.errors import BookingNotFound, InvalidAction, InvalidRequest
from booking_app.repository.base import BookingRepository
from booking_app.scheduling.resolver import BookingConflictResolver
from booking_app.scheduling.slots import generate_slots
from booking_app.scheduling.types import Booking
from booking_app.services.pagination import offset_for, pagination_metadata, pagination_params
from booking_app.services.policy_service import get_policy
from booking_app.services.validation import validate_create_booking_payload, validate_update_booking_payload

logger = logging.getLogger(__name__)


def _resolver(repository: BookingRepository, clock: Clock, enforce_buffers: bool | None) -> BookingConflictResolver:
    if enforce_buffers is None:
        enforce_buffers = settings.enforce_buffers_on_validation
    return BookingConflictResolver(repository, clock=clock, enforce_buffers=enforce_buffers)


def get_available_slots(
    repository: BookingRepository,
    organizer_id: str,
    display_timezone: str | None = None,
    *,
    clock: Clock = utc_now,
) -> list[dict[str, str]]:
    """Open slots for the next window, as [{start, end}] ISO strings in `display_timezone` (default UTC)."""
    tz_name = display_timezone or settings.default_display_timezone
    if not is_valid_timezone(tz_name):
        raise InvalidRequest([{"field": "timezone", "message": "Must be an IANA timezone, e.g. 'America/Bogota'"}])
    policy = get_policy(repository, organizer_id)
    bookings, _ = repository.find_by_organizer(organizer_id, status=STATUS_CONFIRMED)
    slots = generate_slots(policy, bookings, tz_name, now=clock(), window_days=settings.slot_window_days)
    return [slot.to_dict() for slot in slots]


def create_booking(
    repository: BookingRepository,
    organizer_id: str,
    payload: dict[str, Any],
    *,
    clock: Clock = utc_now,
    enforce_buffers: bool | None = None,
) -> Booking:
    """
    Book `payload["startTime"]` for an invitee. The invitee's `timezone` only resolves a
    startTime given without offset and is kept on the record; rules use the organizer's zone.
    """
    policy = get_policy(repository, organizer_id)
    errors = validate_create_booking_payload(payload)
    if errors:
        raise InvalidRequest(errors)
    start = parse_instant(payload["startTime"], payload["timezone"])
    return _resolver(repository, clock, enforce_buffers).create(
        policy,
        start,
        invitee_name=payload["inviteeName"].strip(),
        invitee_email=payload["inviteeEmail"].strip(),
        invitee_timezone=payload["timezone"],
    )


def list_bookings(
    repository: BookingRepository,
    organizer_id: str,
    status: str | None = None,
    page: Any = None,
    limit: Any = None,
) -> dict[str, Any]:
    """One page of the organizer's bookings (default: confirmed), ordered by start time."""
    status = status or STATUS_CONFIRMED
    if status not in BOOKING_STATUSES:
        raise InvalidRequest([{"field": "status", "message": f"Must be one of {', '.join(BOOKING_STATUSES)}"}])
    page, limit = pagination_params(page, limit, settings.default_page_size, settings.max_page_size)
    bookings, total = repository.find_by_organizer(
        organizer_id, status=status, offset=offset_for(page, limit), limit=limit
    )
    return {
        "bookings": [b.to_dict() for b in bookings],
        "pagination": pagination_metadata(page, limit, total),
    }


def update_booking(
    repository: BookingRepository,
    organizer_id: str,
    booking_id: str,
    payload: dict[str, Any],
    *,
    clock: Clock = utc_now,
    enforce_buffers: bool | None = None,
) -> Booking:
    """
    Apply `payload["action"]`:
    - cancel: one-way, idempotent
    - reschedule: needs newStartTime; optional `version` is the version the caller saw
    A booking of another organizer is reported as not found.
    """
    action = payload.get("action")
    if action not in BOOKING_ACTIONS:
        raise InvalidAction(f"action must be one of {', '.join(BOOKING_ACTIONS)}")
    if action == ACTION_RESCHEDULE and not payload.get("newStartTime"):
        raise InvalidAction("newStartTime is required to reschedule")

    booking = repository.get_booking(booking_id)
    if booking is None or booking.organizer_id != organizer_id:
        raise BookingNotFound()

    resolver = _resolver(repository, clock, enforce_buffers)
    if action == ACTION_CANCEL:
        errors = validate_update_booking_payload(payload)
        if errors:
            raise InvalidRequest(errors)
        return resolver.cancel(booking_id)

    policy = get_policy(repository, organizer_id)
    errors = validate_update_booking_payload(payload, policy.timezone)
    if errors:
        raise InvalidRequest(errors)
    # An offset-less newStartTime is the organizer's own wall clock
    new_start = parse_instant(payload["newStartTime"], policy.timezone)
    return resolver.reschedule(policy, booking, new_start, expected_version=payload.get("version"))
