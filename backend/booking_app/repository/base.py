"""Protocol for booking storage. The in-memory and SQLAlchemy repositories share this contract."""
from datetime import datetime
from typing import Protocol

from booking_app.scheduling.types import AvailabilityPolicy, Booking


class BookingRepository(Protocol):
    """
    Persistence seam for policies and bookings. Implementations must make
    insert_if_absent and update_if_version_matches atomic: either the whole write
    lands or nothing changes.
    """

    def get_policy(self, organizer_id: str) -> AvailabilityPolicy | None:
        ...

    def save_policy(self, policy: AvailabilityPolicy) -> AvailabilityPolicy:
        """Create or wholesale-replace the organizer's policy."""
        ...

    def get_booking(self, booking_id: str) -> Booking | None:
        ...

    def find_by_organizer(
        self,
        organizer_id: str,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        """Bookings ordered by start time, one page of them, plus the unpaged total."""
        ...

    def insert_if_absent(self, booking: Booking) -> Booking:
        """
        Persist a confirmed booking unless another confirmed booking of the organizer
        holds the same start (or overlaps it). Raises SlotAlreadyBooked otherwise.
        """
        ...

    def update_if_version_matches(
        self,
        booking_id: str,
        expected_version: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Booking:
        """
        Move a confirmed booking and bump its version, only if its version is still
        `expected_version`. Raises BookingNotFound, ConcurrentModification or SlotAlreadyBooked.
        """
        ...

    def cancel(self, booking_id: str) -> Booking:
        """Mark cancelled. Already-cancelled bookings come back unchanged. Raises BookingNotFound."""
        ...
