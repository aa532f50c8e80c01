"""Canonical shift windows and half-open interval conflict checks.

Everything here is pure: no storage access, no clock.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from ..common.datetime_utils import to_utc
from ..core.enums import ShiftType
from ..core.exceptions import InvalidStateError, ValidationError
from .model import Shift, ShiftWindow

# (local start, local end, days the end is after the start date)
SHIFT_TEMPLATES: dict[ShiftType, tuple[time, time, int]] = {
    ShiftType.MORNING: (time(6, 0), time(14, 0), 0),
    ShiftType.EVENING: (time(14, 0), time(22, 0), 0),
    ShiftType.NIGHT: (time(22, 0), time(6, 0), 1),
}

# Allowed local start hour (inclusive) for explicitly given windows.
ALLOWED_START_HOURS: dict[ShiftType, tuple[int, int]] = {
    ShiftType.MORNING: (5, 8),
    ShiftType.EVENING: (13, 16),
    ShiftType.NIGHT: (21, 23),
}


def window_for_type(shift_type: ShiftType | str, work_date: date, *, tz: tzinfo = timezone.utc) -> ShiftWindow:
    """Map a shift type and calendar date to concrete instants.

    Night shifts end at 06:00 on the following day.
    """

    if not isinstance(shift_type, ShiftType):
        shift_type = ShiftType.parse(shift_type)
    start_t, end_t, end_offset = SHIFT_TEMPLATES[shift_type]
    start = datetime.combine(work_date, start_t, tzinfo=tz)
    end = datetime.combine(work_date + timedelta(days=end_offset), end_t, tzinfo=tz)
    return ShiftWindow(start=start, end=end)


def time_ranges() -> dict[str, dict[str, str]]:
    return {
        t.value: {"start": start.strftime("%H:%M"), "end": end.strftime("%H:%M")}
        for t, (start, end, _) in SHIFT_TEMPLATES.items()
    }


def validate_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start_utc, end_utc = to_utc(start), to_utc(end)
    if start_utc >= end_utc:
        raise InvalidStateError("Start time must be before end time")
    return start_utc, end_utc


def validate_window_for_type(shift_type: ShiftType, window: ShiftWindow, *, tz: tzinfo) -> None:
    validate_range(window.start, window.end)
    low, high = ALLOWED_START_HOURS[shift_type]
    hour = to_utc(window.start).astimezone(tz).hour
    if not low <= hour <= high:
        raise ValidationError(
            f"{shift_type.value.capitalize()} shift should start between {low:02d}:00 and {high:02d}:00"
        )


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""

    return to_utc(a_start) < to_utc(b_end) and to_utc(a_end) > to_utc(b_start)


def find_conflicts(
    candidate_start: datetime,
    candidate_end: datetime,
    existing: Iterable[Shift],
    exclude_id: Optional[int] = None,
) -> list[Shift]:
    start, end = validate_range(candidate_start, candidate_end)
    return [
        s
        for s in existing
        if s.shift_id != exclude_id and overlaps(s.start_time, s.end_time, start, end)
    ]


def has_conflict(
    candidate_start: datetime,
    candidate_end: datetime,
    existing: Iterable[Shift],
    exclude_id: Optional[int] = None,
) -> bool:
    return bool(find_conflicts(candidate_start, candidate_end, existing, exclude_id))
