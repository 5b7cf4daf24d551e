"""Confirmed or cancelled meetings. Never deleted; `version` guards reschedules (optimistic lock)."""
from sqlalchemy import Column, DateTime, Index, Integer, String, text
from sqlalchemy.sql import func

from booking_app.core.constants import CONFIRMED_START_UNIQUE_INDEX, STATUS_CONFIRMED
from booking_app.db.base import Base


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True)
    organizer_id = Column(String(64), nullable=False, index=True)
    invitee_name = Column(String(255), nullable=False)
    invitee_email = Column(String(255), nullable=False)
    invitee_timezone = Column(String(100), nullable=True)  # display/record-keeping only
    start_time = Column(DateTime(timezone=True), nullable=False)  # UTC
    end_time = Column(DateTime(timezone=True), nullable=False)  # UTC, start + duration at commit
    status = Column(String(16), nullable=False, default=STATUS_CONFIRMED)  # confirmed | cancelled
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # At most one confirmed booking per (organizer, start). Cancelled rows keep their history.
    __table_args__ = (
        Index(
            CONFIRMED_START_UNIQUE_INDEX,
            "organizer_id",
            "start_time",
            unique=True,
            postgresql_where=text(f"status = '{STATUS_CONFIRMED}'"),
            sqlite_where=text(f"status = '{STATUS_CONFIRMED}'"),
        ),
    )
