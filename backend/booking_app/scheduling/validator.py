"""
Slot Validation

Checks one candidate start time against an organizer's policy and confirmed bookings.
Used by both booking creation and reschedule, so both flows give identical verdicts
for identical state. Checks run in a fixed order and the first failure is reported.
"""
from datetime import datetime, timedelta
from typing import Iterable

from booking_app.core.clock import ensure_utc
from booking_app.core.errors import ConstraintViolation, ViolationKind
from booking_app.scheduling.overlap import find_conflicts
from booking_app.scheduling.types import AvailabilityPolicy, Booking


def _outside_working_hours(policy: AvailabilityPolicy, start: datetime, end: datetime) -> bool:
    tz = policy.tz
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    hours = policy.hours_for(local_start.isoweekday())
    if hours is None:
        return True
    # A meeting running past local midnight cannot fit any single-day range
    if local_end.date() != local_start.date():
        return True
    return local_start.time() < hours.start or local_end.time() > hours.end


def check_slot(
    policy: AvailabilityPolicy,
    bookings: Iterable[Booking],
    candidate_start: datetime,
    *,
    now: datetime,
    exclude_booking_id: str | None = None,
    enforce_buffers: bool = False,
) -> ViolationKind | None:
    """
    Return the first rule `candidate_start` breaks, or None if it is bookable.

    Order:
        1. insufficient_notice - start earlier than now + minimum_notice
        2. blackout_date - organizer-local date is blacked out
        3. outside_working_hours - [start, start + duration) not inside the weekday's range
        4. slot_conflict - intersects another confirmed booking of the organizer
           (padded by the policy buffers only when enforce_buffers is set)
    """
    start = ensure_utc(candidate_start)
    end = start + policy.duration

    if start < ensure_utc(now) + policy.notice:
        return ViolationKind.INSUFFICIENT_NOTICE

    if start.astimezone(policy.tz).date() in policy.blackout_dates:
        return ViolationKind.BLACKOUT_DATE

    if _outside_working_hours(policy, start, end):
        return ViolationKind.OUTSIDE_WORKING_HOURS

    conflicts = find_conflicts(
        start,
        end,
        bookings,
        organizer_id=policy.organizer_id,
        exclude_booking_id=exclude_booking_id,
        buffer_before=policy.buffer_before if enforce_buffers else 0,
        buffer_after=policy.buffer_after if enforce_buffers else 0,
    )
    if conflicts:
        return ViolationKind.SLOT_CONFLICT

    return None


def validate_slot(
    policy: AvailabilityPolicy,
    bookings: Iterable[Booking],
    candidate_start: datetime,
    *,
    now: datetime,
    exclude_booking_id: str | None = None,
    enforce_buffers: bool = False,
) -> None:
    """Raise ConstraintViolation(kind) if check_slot finds a problem."""
    kind = check_slot(
        policy,
        bookings,
        candidate_start,
        now=now,
        exclude_booking_id=exclude_booking_id,
        enforce_buffers=enforce_buffers,
    )
    if kind is not None:
        raise ConstraintViolation(kind)


def slot_end(policy: AvailabilityPolicy, start: datetime) -> datetime:
    """End instant for a meeting starting at `start` under the current policy."""
    return ensure_utc(start) + timedelta(minutes=policy.meeting_duration)
