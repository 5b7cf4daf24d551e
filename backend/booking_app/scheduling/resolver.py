"""
Booking Conflict Resolver

The only path that writes bookings. A candidate moves
Validated -> Committing -> Committed | Rejected:

- Validated: the candidate passed validate_slot against a fresh read of the
  organizer's confirmed bookings (advisory; racy between concurrent requests)
- Committing: repository.insert_if_absent / update_if_version_matches, which the
  storage layer makes atomic
- Committed: the stored booking is returned
- Rejected: SlotAlreadyBooked (or ConcurrentModification for a stale reschedule)
  is raised; nothing is retried here, the caller re-queries and resubmits
"""
import logging
import uuid
from datetime import datetime
from enum import Enum

from booking_app.core.clock import Clock, ensure_utc, utc_now
from booking_app.core.constants import STATUS_CONFIRMED
from booking_app.core.errors import ConcurrentModification, InvalidAction, SlotAlreadyBooked
from booking_app.repository.base import BookingRepository
from booking_app.scheduling.types import AvailabilityPolicy, Booking
from booking_app.scheduling.validator import slot_end, validate_slot

logger = logging.getLogger(__name__)


class CommitState(str, Enum):
    VALIDATED = "validated"
    COMMITTING = "committing"
    COMMITTED = "committed"
    REJECTED = "rejected"


class BookingConflictResolver:
    """
    Validates and commits bookings for one repository.

    enforce_buffers: pad stored bookings with the policy buffers in the pre-commit
    conflict check (same setting for create and reschedule).
    """

    def __init__(self, repository: BookingRepository, clock: Clock = utc_now, enforce_buffers: bool = False):
        self.repository = repository
        self.clock = clock
        self.enforce_buffers = enforce_buffers

    def _confirmed_bookings(self, organizer_id: str) -> list[Booking]:
        bookings, _ = self.repository.find_by_organizer(organizer_id, status=STATUS_CONFIRMED)
        return bookings

    def _log_state(self, state: CommitState, booking: Booking, detail: str = "") -> None:
        level = logging.WARNING if state == CommitState.REJECTED else logging.INFO
        logger.log(
            level,
            "booking %s: id=%s organizer=%s start=%s version=%s %s",
            state.value, booking.id, booking.organizer_id, booking.start_time.isoformat(), booking.version, detail,
        )

    # --- Create ---

    def prepare(
        self,
        policy: AvailabilityPolicy,
        start_time: datetime,
        invitee_name: str,
        invitee_email: str,
        invitee_timezone: str | None = None,
    ) -> Booking:
        """
        Validate a candidate against current state and return it as an uncommitted
        Booking (Validated). Raises ConstraintViolation.
        """
        start = ensure_utc(start_time)
        validate_slot(
            policy,
            self._confirmed_bookings(policy.organizer_id),
            start,
            now=self.clock(),
            enforce_buffers=self.enforce_buffers,
        )
        candidate = Booking(
            id=str(uuid.uuid4()),
            organizer_id=policy.organizer_id,
            invitee_name=invitee_name,
            invitee_email=invitee_email,
            invitee_timezone=invitee_timezone,
            start_time=start,
            end_time=slot_end(policy, start),
            status=STATUS_CONFIRMED,
            version=1,
        )
        self._log_state(CommitState.VALIDATED, candidate)
        return candidate

    def commit(self, candidate: Booking) -> Booking:
        """Committing -> Committed (returns the stored booking) or Rejected (raises SlotAlreadyBooked)."""
        self._log_state(CommitState.COMMITTING, candidate)
        try:
            stored = self.repository.insert_if_absent(candidate)
        except SlotAlreadyBooked:
            self._log_state(CommitState.REJECTED, candidate, "slot_already_booked")
            raise
        self._log_state(CommitState.COMMITTED, stored)
        return stored

    def create(
        self,
        policy: AvailabilityPolicy,
        start_time: datetime,
        invitee_name: str,
        invitee_email: str,
        invitee_timezone: str | None = None,
    ) -> Booking:
        candidate = self.prepare(policy, start_time, invitee_name, invitee_email, invitee_timezone)
        return self.commit(candidate)

    # --- Reschedule / cancel ---

    def reschedule(
        self,
        policy: AvailabilityPolicy,
        booking: Booking,
        new_start_time: datetime,
        expected_version: int | None = None,
    ) -> Booking:
        """
        Move `booking` to `new_start_time`, conditioned on the version the caller saw
        (`expected_version`, or the version of `booking` as read).
        The new end uses the policy's current meeting duration.
        """
        if not booking.is_confirmed:
            raise InvalidAction("Cancelled bookings cannot be rescheduled")
        start = ensure_utc(new_start_time)
        validate_slot(
            policy,
            self._confirmed_bookings(policy.organizer_id),
            start,
            now=self.clock(),
            exclude_booking_id=booking.id,
            enforce_buffers=self.enforce_buffers,
        )
        version = booking.version if expected_version is None else expected_version
        try:
            updated = self.repository.update_if_version_matches(booking.id, version, start, slot_end(policy, start))
        except (SlotAlreadyBooked, ConcurrentModification) as e:
            self._log_state(CommitState.REJECTED, booking, e.code)
            raise
        self._log_state(CommitState.COMMITTED, updated, "rescheduled")
        return updated

    def cancel(self, booking_id: str) -> Booking:
        """Unconditional; cancelling twice returns the cancelled booking unchanged."""
        cancelled = self.repository.cancel(booking_id)
        logger.info("booking cancelled: id=%s organizer=%s version=%s", cancelled.id, cancelled.organizer_id, cancelled.version)
        return cancelled
