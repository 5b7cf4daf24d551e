"""
Clock and instant helpers. Everything the engine compares is an aware UTC datetime;
wall-clock interpretation happens only through pytz zones.
"""
from datetime import datetime, timezone
from typing import Callable

import pytz

# Injectable "now": tests pass a fixed instant, production uses utc_now.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    """Clock that always returns `instant` (normalized to UTC)."""
    value = ensure_utc(instant)
    return lambda: value


def ensure_utc(value: datetime) -> datetime:
    """Aware datetime in UTC. Naive values are assumed to already be UTC (as stored by SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_timezone(name: str):
    """pytz zone for an IANA name. Raises pytz.UnknownTimeZoneError for bad names."""
    return pytz.timezone(name)


def is_valid_timezone(name: str | None) -> bool:
    if not name or not isinstance(name, str):
        return False
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def parse_instant(value: str, fallback_timezone: str | None = None) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.
    A value without an offset is read as wall-clock time in `fallback_timezone` (UTC if None).
    Raises ValueError for unparseable input.
    """
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        tz = get_timezone(fallback_timezone or "UTC")
        parsed = tz.localize(parsed)
    return parsed.astimezone(timezone.utc)
