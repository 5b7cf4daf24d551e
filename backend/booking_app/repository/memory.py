"""
In-process repository. One lock guards every write, which plays the role of the
database's unique index and exclusion constraint: check and write happen as one step.
"""
import logging
import threading
from dataclasses import replace
from datetime import datetime

from booking_app.core.clock import ensure_utc, utc_now
from booking_app.core.constants import STATUS_CANCELLED, STATUS_CONFIRMED
from booking_app.core.errors import BookingNotFound, ConcurrentModification, InvalidAction, SlotAlreadyBooked
from booking_app.scheduling.overlap import find_conflicts
from booking_app.scheduling.types import AvailabilityPolicy, Booking

logger = logging.getLogger(__name__)


class InMemoryBookingRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._policies: dict[str, AvailabilityPolicy] = {}
        self._bookings: dict[str, Booking] = {}

    # --- Policies ---

    def get_policy(self, organizer_id: str) -> AvailabilityPolicy | None:
        return self._policies.get(organizer_id)

    def save_policy(self, policy: AvailabilityPolicy) -> AvailabilityPolicy:
        with self._lock:
            self._policies[policy.organizer_id] = policy
        return policy

    # --- Bookings ---

    def get_booking(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def find_by_organizer(
        self,
        organizer_id: str,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        with self._lock:
            rows = [
                b for b in self._bookings.values()
                if b.organizer_id == organizer_id and (status is None or b.status == status)
            ]
        rows.sort(key=lambda b: (b.start_time, b.id))
        total = len(rows)
        end = None if limit is None else offset + limit
        return rows[offset:end], total

    def _slot_taken(self, organizer_id: str, start: datetime, end: datetime, exclude_id: str | None) -> bool:
        same_start = any(
            b.is_confirmed and b.organizer_id == organizer_id and b.id != exclude_id and b.start_time == start
            for b in self._bookings.values()
        )
        return same_start or bool(
            find_conflicts(start, end, self._bookings.values(), organizer_id=organizer_id, exclude_booking_id=exclude_id)
        )

    def insert_if_absent(self, booking: Booking) -> Booking:
        start = ensure_utc(booking.start_time)
        end = ensure_utc(booking.end_time)
        with self._lock:
            if self._slot_taken(booking.organizer_id, start, end, None):
                logger.warning(
                    "insert_if_absent: slot taken organizer=%s start=%s", booking.organizer_id, start.isoformat()
                )
                raise SlotAlreadyBooked()
            now = utc_now()
            stored = replace(
                booking,
                start_time=start,
                end_time=end,
                status=STATUS_CONFIRMED,
                version=1,
                created_at=now,
                updated_at=now,
            )
            self._bookings[stored.id] = stored
        return stored

    def update_if_version_matches(
        self,
        booking_id: str,
        expected_version: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Booking:
        start = ensure_utc(start_time)
        end = ensure_utc(end_time)
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise BookingNotFound()
            if current.version != expected_version:
                raise ConcurrentModification()
            if not current.is_confirmed:
                raise InvalidAction("Cancelled bookings cannot be rescheduled")
            if self._slot_taken(current.organizer_id, start, end, booking_id):
                raise SlotAlreadyBooked()
            updated = replace(
                current,
                start_time=start,
                end_time=end,
                version=current.version + 1,
                updated_at=utc_now(),
            )
            self._bookings[booking_id] = updated
        return updated

    def cancel(self, booking_id: str) -> Booking:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise BookingNotFound()
            if not current.is_confirmed:
                return current
            cancelled = replace(
                current,
                status=STATUS_CANCELLED,
                version=current.version + 1,
                updated_at=utc_now(),
            )
            self._bookings[booking_id] = cancelled
        return cancelled
