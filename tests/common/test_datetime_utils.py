from datetime import date, datetime, timedelta, timezone

import pytest

from shift_attendance.common.datetime_utils import minutes_between, parse_iso_date, parse_iso_instant
from shift_attendance.core.exceptions import ValidationError


def test_parse_iso_date_rejects_trailing_text():
    assert parse_iso_date(" 2024-02-01 ") == date(2024, 2, 1)
    with pytest.raises(ValidationError):
        parse_iso_date("2024-02-01junk")
    with pytest.raises(ValidationError):
        parse_iso_date("2024-02-01T09:00:00+10:00")


def test_parse_iso_instant_needs_offset():
    assert parse_iso_instant("2024-02-01T00:00:00Z").tzinfo == timezone.utc
    with pytest.raises(ValidationError):
        parse_iso_instant("2024-02-01T00:00:00")


def test_minutes_between_rounds_half_up():
    start = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
    assert minutes_between(start, start + timedelta(seconds=30)) == 1
    assert minutes_between(start, start + timedelta(seconds=150)) == 3
    assert minutes_between(start, start + timedelta(seconds=149)) == 2
