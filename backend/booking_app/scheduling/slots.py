"""
Slot Generation

Generates discrete open slots for display, considering:
- Working hours per weekday in the organizer's timezone
- Blackout dates
- Minimum notice
- Confirmed bookings padded by the policy buffers
"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator

import pytz

from booking_app.core.clock import ensure_utc, get_timezone
from booking_app.core.constants import DEFAULT_DISPLAY_TIMEZONE, SLOT_WINDOW_DAYS
from booking_app.scheduling.overlap import find_conflicts
from booking_app.scheduling.types import AvailabilityPolicy, Booking, TimeSlot, WorkingHours

logger = logging.getLogger(__name__)


def _day_candidates(
    day: date,
    hours: WorkingHours,
    tz: pytz.tzinfo.BaseTzInfo,
    duration: timedelta,
) -> Iterator[tuple[datetime, datetime]]:
    """
    Back-to-back candidates from the configured start. A candidate ending after the
    working-hours end is dropped (no partial trailing slot). Yields UTC pairs.
    """
    day_start = tz.localize(datetime.combine(day, hours.start))
    day_end = tz.localize(datetime.combine(day, hours.end))
    cursor = day_start
    while cursor + duration <= day_end:
        yield cursor.astimezone(pytz.utc), (cursor + duration).astimezone(pytz.utc)
        cursor += duration


def generate_slots(
    policy: AvailabilityPolicy,
    bookings: Iterable[Booking],
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE,
    *,
    now: datetime,
    window_days: int = SLOT_WINDOW_DAYS,
) -> list[TimeSlot]:
    """
    Open slots in [now, now + window_days), oldest first, rendered in `display_timezone`.

    Algorithm:
        1. Walk organizer-local calendar days starting with the local date of `now`
        2. Skip blackout dates and weekdays without working hours
        3. Step through the day in meeting_duration increments
        4. Drop candidates starting before now + minimum_notice or at/after the window end
        5. Drop candidates hitting a confirmed booking padded by bufferBefore/bufferAfter
        6. Convert survivors to the display timezone

    Pure: same policy, bookings and `now` always give the same list.
    """
    tz = policy.tz
    display_tz = get_timezone(display_timezone or DEFAULT_DISPLAY_TIMEZONE)
    now_utc = ensure_utc(now)
    earliest_start = now_utc + policy.notice
    window_end = now_utc + timedelta(days=window_days)
    duration = policy.duration
    busy = [b for b in bookings if b.is_confirmed and b.organizer_id == policy.organizer_id]

    slots: list[TimeSlot] = []
    day = now_utc.astimezone(tz).date()
    last_day = window_end.astimezone(tz).date()
    while day <= last_day:
        hours = policy.hours_for(day.isoweekday())
        if day in policy.blackout_dates or hours is None:
            day += timedelta(days=1)
            continue

        for start, end in _day_candidates(day, hours, tz, duration):
            if start < earliest_start or start >= window_end:
                continue
            if find_conflicts(
                start,
                end,
                busy,
                organizer_id=policy.organizer_id,
                buffer_before=policy.buffer_before,
                buffer_after=policy.buffer_after,
            ):
                continue
            slots.append(TimeSlot(start=start.astimezone(display_tz), end=end.astimezone(display_tz)))

        day += timedelta(days=1)

    logger.debug(
        "generate_slots: organizer=%s days=%s bookings=%s slots=%s",
        policy.organizer_id, window_days, len(busy), len(slots),
    )
    return slots
