"""
Request payload checks. Each validate_* function returns a list of
{"field", "message"} errors (empty when the payload is fine) so the API can
report every problem at once instead of the first one.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError

from booking_app.core.clock import is_valid_timezone, parse_instant
from booking_app.core.constants import (
    ACTION_RESCHEDULE,
    MAX_BUFFER_MINUTES,
    MAX_MEETING_DURATION_MINUTES,
    MAX_MINIMUM_NOTICE_HOURS,
    MIN_MEETING_DURATION_MINUTES,
    WEEKDAYS,
)
from booking_app.core.errors import InvalidRequest
from booking_app.scheduling.types import AvailabilityPolicy, WorkingHours, parse_hhmm

_EMAIL = TypeAdapter(EmailStr)
MAX_TEXT_LENGTH = 255

# Room for a meeting, its buffers and any UTC offset, so later arithmetic stays inside datetime range
_INSTANT_MARGIN = timedelta(days=2)
_EARLIEST_INSTANT = datetime.min.replace(tzinfo=timezone.utc) + _INSTANT_MARGIN
_LATEST_INSTANT = datetime.max.replace(tzinfo=timezone.utc) - _INSTANT_MARGIN


def _error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_timezone(payload: dict[str, Any], field: str, errors: list[dict[str, str]]) -> None:
    if not is_valid_timezone(payload.get(field)):
        errors.append(_error(field, "Must be an IANA timezone, e.g. 'America/Bogota'"))


def _check_instant(payload: dict[str, Any], field: str, fallback_tz: str | None, errors: list[dict[str, str]]) -> None:
    value = payload.get(field)
    if not isinstance(value, str) or not value.strip():
        errors.append(_error(field, "Required ISO-8601 date-time"))
        return
    try:
        instant = parse_instant(value, fallback_tz if is_valid_timezone(fallback_tz) else None)
    except ValueError:
        errors.append(_error(field, "Must be an ISO-8601 date-time"))
        return
    except OverflowError:
        instant = None
    if instant is None or not _EARLIEST_INSTANT <= instant <= _LATEST_INSTANT:
        errors.append(_error(field, "Date-time is out of the supported range"))


# --- Availability policy ---


def _check_working_hours(value: Any, errors: list[dict[str, str]]) -> None:
    if not isinstance(value, list):
        errors.append(_error("workingHours", "Must be a list of {day, start, end}"))
        return
    seen: set[int] = set()
    for i, entry in enumerate(value):
        field = f"workingHours[{i}]"
        if not isinstance(entry, dict):
            errors.append(_error(field, "Must be an object with day, start, end"))
            continue
        day = entry.get("day")
        if not _is_int(day) or day not in WEEKDAYS:
            errors.append(_error(f"{field}.day", "Must be an integer 1 (Monday) to 7 (Sunday)"))
        elif day in seen:
            errors.append(_error(f"{field}.day", "Only one range per weekday"))
        else:
            seen.add(day)
        bounds = []
        for key in ("start", "end"):
            try:
                bounds.append(parse_hhmm(entry.get(key)) if isinstance(entry.get(key), str) else None)
            except ValueError:
                bounds.append(None)
            if bounds[-1] is None:
                errors.append(_error(f"{field}.{key}", "Must be HH:MM"))
        if None not in bounds and bounds[0] >= bounds[1]:
            errors.append(_error(field, "start must be before end"))


def validate_policy_payload(payload: dict[str, Any]) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    _check_timezone(payload, "timezone", errors)
    _check_working_hours(payload.get("workingHours"), errors)

    duration = payload.get("meetingDuration")
    if not _is_int(duration) or not MIN_MEETING_DURATION_MINUTES <= duration <= MAX_MEETING_DURATION_MINUTES:
        errors.append(_error(
            "meetingDuration",
            f"Must be an integer between {MIN_MEETING_DURATION_MINUTES} and {MAX_MEETING_DURATION_MINUTES} minutes",
        ))

    for field, upper in (
        ("bufferBefore", MAX_BUFFER_MINUTES),
        ("bufferAfter", MAX_BUFFER_MINUTES),
        ("minimumNotice", MAX_MINIMUM_NOTICE_HOURS),
    ):
        value = payload.get(field, 0)
        if not _is_int(value) or not 0 <= value <= upper:
            errors.append(_error(field, f"Must be an integer between 0 and {upper}"))

    blackout = payload.get("blackoutDates") or []
    if not isinstance(blackout, list):
        errors.append(_error("blackoutDates", "Must be a list of YYYY-MM-DD dates"))
    else:
        for i, value in enumerate(blackout):
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(_error(f"blackoutDates[{i}]", "Must be YYYY-MM-DD"))
    return errors


def policy_from_payload(organizer_id: str, payload: dict[str, Any]) -> AvailabilityPolicy:
    """Build a policy from a settings payload. Raises InvalidRequest with every error found."""
    errors = validate_policy_payload(payload)
    if errors:
        raise InvalidRequest(errors)
    return AvailabilityPolicy(
        organizer_id=organizer_id,
        timezone=payload["timezone"],
        working_hours=tuple(
            WorkingHours(weekday=wh["day"], start=parse_hhmm(wh["start"]), end=parse_hhmm(wh["end"]))
            for wh in payload["workingHours"]
        ),
        meeting_duration=payload["meetingDuration"],
        buffer_before=payload.get("bufferBefore", 0),
        buffer_after=payload.get("bufferAfter", 0),
        minimum_notice=payload.get("minimumNotice", 0),
        blackout_dates=frozenset(date.fromisoformat(d) for d in payload.get("blackoutDates") or []),
    )


# --- Bookings ---


def validate_create_booking_payload(payload: dict[str, Any]) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    _check_timezone(payload, "timezone", errors)
    _check_instant(payload, "startTime", payload.get("timezone"), errors)
    name = payload.get("inviteeName")
    if not isinstance(name, str) or not name.strip():
        errors.append(_error("inviteeName", "Required"))
    elif len(name) > MAX_TEXT_LENGTH:
        errors.append(_error("inviteeName", f"At most {MAX_TEXT_LENGTH} characters"))
    email = payload.get("inviteeEmail")
    if not isinstance(email, str) or len(email) > MAX_TEXT_LENGTH:
        errors.append(_error("inviteeEmail", "Must be a valid email address"))
    else:
        try:
            _EMAIL.validate_python(email.strip())
        except ValidationError as e:
            errors.append(_error("inviteeEmail", e.errors()[0]["msg"]))
    return errors


def validate_update_booking_payload(payload: dict[str, Any], organizer_timezone: str | None = None) -> list[dict[str, str]]:
    """Field-level checks for an update; whether the action itself is valid is decided by the service."""
    errors: list[dict[str, str]] = []
    if payload.get("action") == ACTION_RESCHEDULE:
        _check_instant(payload, "newStartTime", organizer_timezone, errors)
    elif payload.get("newStartTime") is not None:
        errors.append(_error("newStartTime", "Only allowed with action=reschedule"))
    version = payload.get("version")
    if version is not None and (not _is_int(version) or version < 1):
        errors.append(_error("version", "Must be an integer >= 1"))
    return errors
