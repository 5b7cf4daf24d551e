"""One row per organizer: the working-hours policy slots are generated from. Replaced wholesale on update."""
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from booking_app.db.base import Base


class AvailabilityPolicyRow(Base):
    __tablename__ = "availability_policies"

    organizer_id = Column(String(64), primary_key=True)
    timezone = Column(String(100), nullable=False)
    working_hours = Column(JSON, nullable=False)  # [{"day": 1..7, "start": "HH:MM", "end": "HH:MM"}]
    meeting_duration = Column(Integer, nullable=False)  # minutes
    buffer_before = Column(Integer, nullable=False, default=0)  # minutes
    buffer_after = Column(Integer, nullable=False, default=0)  # minutes
    minimum_notice = Column(Integer, nullable=False, default=0)  # hours
    blackout_dates = Column(JSON, nullable=True)  # ["YYYY-MM-DD", ...], organizer-local
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
