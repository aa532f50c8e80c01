from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import InvalidStateError, ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def parse_iso_instant(value: str) -> datetime:
    """Parse an ISO-8601 timestamp that carries a UTC offset.

    A trailing ``Z`` is accepted. Naive timestamps are rejected because they do
    not name a single instant.
    """

    raw = (value or "").strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        raise ValidationError(f"Timestamp must include a UTC offset: {value!r}")
    return parsed


def load_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        raise ValidationError(f"Unknown time zone: {name}")


def to_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC.

    Aware datetimes sharing a tzinfo are compared by wall clock in Python, so
    instant arithmetic always goes through UTC.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidStateError("Timestamps must be timezone-aware")
    return value.astimezone(timezone.utc)


def now_utc() -> datetime:
    """Current instant.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, halves rounded up."""

    seconds = (to_utc(end) - to_utc(start)).total_seconds()
    return int(math.floor(seconds / 60 + 0.5))


def local_date(instant: datetime, tz: tzinfo) -> date:
    return to_utc(instant).astimezone(tz).date()


def local_parts(instant: Optional[datetime], tz: tzinfo) -> Optional[dict]:
    """Local date/time/day-name view of an instant for display."""

    if instant is None:
        return None
    local = to_utc(instant).astimezone(tz)
    return {
        "dateISO": local.strftime("%Y-%m-%d"),
        "time": local.strftime("%H:%M:%S"),
        "dayName": local.strftime("%A"),
        "tz": str(tz),
    }


def local_day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[00:00 of day, 00:00 of next day) in tz, as UTC instants."""

    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return to_utc(start), to_utc(end)
