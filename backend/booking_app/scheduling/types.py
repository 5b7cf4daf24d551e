"""
Immutable records the engine works on. Persistence rows are mapped to these by the
repositories, so the generator and validator never touch a database session.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any

from booking_app.core.clock import get_timezone
from booking_app.core.constants import STATUS_CONFIRMED


def parse_hhmm(value: str) -> time:
    """'09:30' -> time(9, 30). Raises ValueError for anything else."""
    hours, sep, minutes = value.strip().partition(":")
    if not sep or len(hours) != 2 or len(minutes) != 2 or not (hours + minutes).isdigit():
        raise ValueError(f"Expected HH:MM, got {value!r}")
    return time(int(hours), int(minutes))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class WorkingHours:
    """Open range for one ISO weekday (Monday=1), organizer-local wall clock."""

    weekday: int
    start: time
    end: time

    def to_dict(self) -> dict[str, Any]:
        return {"day": self.weekday, "start": format_hhmm(self.start), "end": format_hhmm(self.end)}


@dataclass(frozen=True)
class AvailabilityPolicy:
    organizer_id: str
    timezone: str
    working_hours: tuple[WorkingHours, ...]
    meeting_duration: int  # minutes
    buffer_before: int = 0  # minutes
    buffer_after: int = 0  # minutes
    minimum_notice: int = 0  # hours
    blackout_dates: frozenset[date] = field(default_factory=frozenset)

    @property
    def tz(self):
        return get_timezone(self.timezone)

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.meeting_duration)

    @property
    def notice(self) -> timedelta:
        return timedelta(hours=self.minimum_notice)

    def hours_for(self, weekday: int) -> WorkingHours | None:
        for entry in self.working_hours:
            if entry.weekday == weekday:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "organizerId": self.organizer_id,
            "timezone": self.timezone,
            "workingHours": [wh.to_dict() for wh in sorted(self.working_hours, key=lambda wh: wh.weekday)],
            "meetingDuration": self.meeting_duration,
            "bufferBefore": self.buffer_before,
            "bufferAfter": self.buffer_after,
            "minimumNotice": self.minimum_notice,
            "blackoutDates": sorted(d.isoformat() for d in self.blackout_dates),
        }


@dataclass(frozen=True)
class Booking:
    id: str
    organizer_id: str
    invitee_name: str
    invitee_email: str
    start_time: datetime  # aware UTC
    end_time: datetime  # aware UTC
    status: str = STATUS_CONFIRMED
    version: int = 1
    invitee_timezone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == STATUS_CONFIRMED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organizerId": self.organizer_id,
            "inviteeName": self.invitee_name,
            "inviteeEmail": self.invitee_email,
            "inviteeTimezone": self.invitee_timezone,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "status": self.status,
            "version": self.version,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class TimeSlot:
    """One open slot; both ends are aware datetimes in the display timezone."""

    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}
