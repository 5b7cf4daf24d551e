"""
SQLAlchemy repository. The partial unique index on (organizer_id, start_time) for
confirmed rows, plus the PostgreSQL exclusion constraint from migration 002, are the
final arbiter between concurrent writers. Their violations become SlotAlreadyBooked;
any other IntegrityError is a storage failure and is re-raised untouched.
"""
import logging
from datetime import date, datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_app.core.clock import ensure_utc
from booking_app.core.constants import (
    CONFIRMED_OVERLAP_EXCLUSION,
    CONFIRMED_START_UNIQUE_INDEX,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
)
from booking_app.core.errors import BookingNotFound, ConcurrentModification, InvalidAction, SlotAlreadyBooked
from booking_app.models.availability_policy import AvailabilityPolicyRow
from booking_app.models.booking import BookingRow
from booking_app.scheduling.types import AvailabilityPolicy, Booking, WorkingHours, parse_hhmm

logger = logging.getLogger(__name__)

# unique_violation, exclusion_violation
_SLOT_PGCODES = ("23505", "23P01")


def _is_slot_violation(exc: IntegrityError) -> bool:
    """True if the IntegrityError came from the confirmed-slot index/constraint (not e.g. a NOT NULL)."""
    msg = str(exc.orig)
    if CONFIRMED_START_UNIQUE_INDEX in msg or CONFIRMED_OVERLAP_EXCLUSION in msg:
        return True
    if getattr(exc.orig, "pgcode", None) in _SLOT_PGCODES and "bookings" in msg:
        return True
    # SQLite reports the columns, not the index name
    return "UNIQUE constraint failed" in msg and "bookings.start_time" in msg


def _to_policy(row: AvailabilityPolicyRow) -> AvailabilityPolicy:
    return AvailabilityPolicy(
        organizer_id=row.organizer_id,
        timezone=row.timezone,
        working_hours=tuple(
            WorkingHours(weekday=int(wh["day"]), start=parse_hhmm(wh["start"]), end=parse_hhmm(wh["end"]))
            for wh in (row.working_hours or [])
        ),
        meeting_duration=row.meeting_duration,
        buffer_before=row.buffer_before or 0,
        buffer_after=row.buffer_after or 0,
        minimum_notice=row.minimum_notice or 0,
        blackout_dates=frozenset(date.fromisoformat(d) for d in (row.blackout_dates or [])),
    )


def _to_booking(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        organizer_id=row.organizer_id,
        invitee_name=row.invitee_name,
        invitee_email=row.invitee_email,
        invitee_timezone=row.invitee_timezone,
        start_time=ensure_utc(row.start_time),
        end_time=ensure_utc(row.end_time),
        status=row.status,
        version=row.version,
        created_at=ensure_utc(row.created_at) if row.created_at else None,
        updated_at=ensure_utc(row.updated_at) if row.updated_at else None,
    )


class SqlBookingRepository:
    def __init__(self, db: Session):
        self.db = db

    # --- Policies ---

    def get_policy(self, organizer_id: str) -> AvailabilityPolicy | None:
        row = self.db.get(AvailabilityPolicyRow, organizer_id)
        return _to_policy(row) if row else None

    def save_policy(self, policy: AvailabilityPolicy) -> AvailabilityPolicy:
        values = policy.to_dict()
        row = self.db.get(AvailabilityPolicyRow, policy.organizer_id)
        if not row:
            row = AvailabilityPolicyRow(organizer_id=policy.organizer_id)
            self.db.add(row)
        # Wholesale replace: every field is overwritten, nothing merged
        row.timezone = values["timezone"]
        row.working_hours = values["workingHours"]
        row.meeting_duration = values["meetingDuration"]
        row.buffer_before = values["bufferBefore"]
        row.buffer_after = values["bufferAfter"]
        row.minimum_notice = values["minimumNotice"]
        row.blackout_dates = values["blackoutDates"]
        self.db.commit()
        self.db.refresh(row)
        return _to_policy(row)

    # --- Bookings ---

    def get_booking(self, booking_id: str) -> Booking | None:
        row = self.db.get(BookingRow, booking_id)
        return _to_booking(row) if row else None

    def find_by_organizer(
        self,
        organizer_id: str,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        q = self.db.query(BookingRow).filter(BookingRow.organizer_id == organizer_id)
        if status is not None:
            q = q.filter(BookingRow.status == status)
        total = q.count()
        q = q.order_by(BookingRow.start_time.asc(), BookingRow.id.asc()).offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return [_to_booking(r) for r in q.all()], total

    def _overlapping_exists(self, organizer_id: str, start: datetime, end: datetime, exclude_id: str | None) -> bool:
        """In-transaction recheck; on PostgreSQL the exclusion constraint still has the last word."""
        q = self.db.query(BookingRow.id).filter(
            BookingRow.organizer_id == organizer_id,
            BookingRow.status == STATUS_CONFIRMED,
            BookingRow.start_time < end,
            BookingRow.end_time > start,
        )
        if exclude_id is not None:
            q = q.filter(BookingRow.id != exclude_id)
        return q.first() is not None

    def insert_if_absent(self, booking: Booking) -> Booking:
        start = ensure_utc(booking.start_time)
        end = ensure_utc(booking.end_time)
        row = BookingRow(
            id=booking.id,
            organizer_id=booking.organizer_id,
            invitee_name=booking.invitee_name,
            invitee_email=booking.invitee_email,
            invitee_timezone=booking.invitee_timezone,
            start_time=start,
            end_time=end,
            status=STATUS_CONFIRMED,
            version=1,
        )
        try:
            if self._overlapping_exists(booking.organizer_id, start, end, None):
                self.db.rollback()
                raise SlotAlreadyBooked()
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_slot_violation(e):
                raise
            logger.warning(
                "insert_if_absent: constraint rejected organizer=%s start=%s", booking.organizer_id, start.isoformat()
            )
            raise SlotAlreadyBooked() from None
        self.db.refresh(row)
        return _to_booking(row)

    def update_if_version_matches(
        self,
        booking_id: str,
        expected_version: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Booking:
        start = ensure_utc(start_time)
        end = ensure_utc(end_time)
        current = self.db.get(BookingRow, booking_id)
        if current is None:
            raise BookingNotFound()
        if current.version != expected_version:
            self.db.rollback()
            raise ConcurrentModification()
        organizer_id = current.organizer_id

        stmt = (
            update(BookingRow)
            .where(
                BookingRow.id == booking_id,
                BookingRow.version == expected_version,
                BookingRow.status == STATUS_CONFIRMED,
            )
            .values(start_time=start, end_time=end, version=BookingRow.version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        try:
            if self._overlapping_exists(organizer_id, start, end, booking_id):
                self.db.rollback()
                raise SlotAlreadyBooked()
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                latest = self.get_booking(booking_id)
                if latest is None:
                    raise BookingNotFound()
                if latest.version != expected_version:
                    logger.warning(
                        "update_if_version_matches: stale version booking=%s expected=%s actual=%s",
                        booking_id, expected_version, latest.version,
                    )
                    raise ConcurrentModification()
                raise InvalidAction("Cancelled bookings cannot be rescheduled")
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_slot_violation(e):
                raise
            raise SlotAlreadyBooked() from None
        self.db.expire_all()
        return self.get_booking(booking_id)

    def cancel(self, booking_id: str) -> Booking:
        current = self.get_booking(booking_id)
        if current is None:
            raise BookingNotFound()
        if not current.is_confirmed:
            return current
        self.db.execute(
            update(BookingRow)
            .where(BookingRow.id == booking_id, BookingRow.status == STATUS_CONFIRMED)
            .values(status=STATUS_CANCELLED, version=BookingRow.version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return self.get_booking(booking_id)
