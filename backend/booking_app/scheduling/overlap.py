"""
Overlap Detection

Half-open interval test shared by slot generation, slot validation and the
in-memory commit path, so all three agree on what "conflict" means.
"""
from datetime import datetime, timedelta
from typing import Iterable

from booking_app.scheduling.types import Booking


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """[a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and a_end > b_start


def conflicts_with_booking(
    start: datetime,
    end: datetime,
    booking: Booking,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> bool:
    """
    True if [start, end) hits the booking padded to
    [booking.start - buffer_before, booking.end + buffer_after).
    Only the stored booking is padded, never the candidate.
    """
    return intervals_overlap(
        start,
        end,
        booking.start_time - timedelta(minutes=buffer_before),
        booking.end_time + timedelta(minutes=buffer_after),
    )


def find_conflicts(
    start: datetime,
    end: datetime,
    bookings: Iterable[Booking],
    *,
    organizer_id: str,
    exclude_booking_id: str | None = None,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> list[Booking]:
    """Confirmed bookings of `organizer_id` (other than `exclude_booking_id`) that conflict with [start, end)."""
    return [
        booking
        for booking in bookings
        if booking.is_confirmed
        and booking.organizer_id == organizer_id
        and booking.id != exclude_booking_id
        and conflicts_with_booking(start, end, booking, buffer_before, buffer_after)
    ]
