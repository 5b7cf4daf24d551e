"""Shared fixtures for scheduling tests: fixed clock, policy/booking builders, SQLite session."""
import uuid
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import booking_app.models  # noqa: F401  (registers tables on Base.metadata)
from booking_app.core.clock import fixed_clock
from booking_app.db.base import Base
from booking_app.scheduling.types import AvailabilityPolicy, Booking, WorkingHours

ORGANIZER_ID = "org-1"

# Saturday. Monday 2025-11-17 is the first full working day in most tests.
NOW = datetime(2025, 11, 15, 10, 0, tzinfo=timezone.utc)
CLOCK = fixed_clock(NOW)
MONDAY = date(2025, 11, 17)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def monday_at(hour: int, minute: int = 0) -> datetime:
    return utc(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute)


def week_hours(start: time = time(9, 0), end: time = time(17, 0), days=range(1, 8)) -> tuple[WorkingHours, ...]:
    return tuple(WorkingHours(weekday=d, start=start, end=end) for d in days)


def make_policy(**overrides) -> AvailabilityPolicy:
    values = {
        "organizer_id": ORGANIZER_ID,
        "timezone": "UTC",
        "working_hours": week_hours(),
        "meeting_duration": 30,
        "buffer_before": 0,
        "buffer_after": 0,
        "minimum_notice": 0,
        "blackout_dates": frozenset(),
    }
    values.update(overrides)
    return AvailabilityPolicy(**values)


def make_booking(start: datetime, minutes: int = 30, **overrides) -> Booking:
    values = {
        "id": str(uuid.uuid4()),
        "organizer_id": ORGANIZER_ID,
        "invitee_name": "Ada Lovelace",
        "invitee_email": "ada@example.com",
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
    }
    values.update(overrides)
    return Booking(**values)


def policy_payload(**overrides) -> dict:
    payload = {
        "timezone": "UTC",
        "workingHours": [{"day": d, "start": "09:00", "end": "17:00"} for d in range(1, 8)],
        "meetingDuration": 30,
        "bufferBefore": 0,
        "bufferAfter": 0,
        "minimumNotice": 0,
        "blackoutDates": [],
    }
    payload.update(overrides)
    return payload


def booking_payload(start_time: str, **overrides) -> dict:
    payload = {
        "startTime": start_time,
        "inviteeName": "Grace Hopper",
        "inviteeEmail": "grace@example.com",
        "timezone": "UTC",
    }
    payload.update(overrides)
    return payload


def sqlite_session_factory() -> sessionmaker:
    """In-memory SQLite shared across threads/sessions, schema created from the models."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
