from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from shift_attendance.core.enums import AssignmentStrategy, ShiftType
from shift_attendance.core.exceptions import ValidationError
from shift_attendance.scheduling.planners import (
    AssignShiftRequest,
    AutoWeeklyPlanner,
    ExplicitWindowPlanner,
    PlannerFactory,
    UserDefinedPlanner,
)

TZ = ZoneInfo("Australia/Brisbane")


def test_factory_picks_planner_by_strategy():
    factory = PlannerFactory()
    single = AssignShiftRequest(user_id=1, shift_type=ShiftType.MORNING, work_date=date(2024, 1, 1))
    weekly = AssignShiftRequest(
        user_id=1, shift_type=ShiftType.MORNING, strategy=AssignmentStrategy.AUTO_WEEKLY, start_date=date(2024, 1, 1)
    )
    explicit = AssignShiftRequest(
        user_id=1,
        shift_type=ShiftType.MORNING,
        start_time=datetime(2024, 1, 1, 6, tzinfo=TZ),
        end_time=datetime(2024, 1, 1, 14, tzinfo=TZ),
    )

    assert isinstance(factory.for_request(single), UserDefinedPlanner)
    assert isinstance(factory.for_request(weekly), AutoWeeklyPlanner)
    assert isinstance(factory.for_request(explicit), ExplicitWindowPlanner)


def test_explicit_window_needs_both_ends():
    req = AssignShiftRequest(user_id=1, shift_type=ShiftType.MORNING, start_time=datetime(2024, 1, 1, 6, tzinfo=TZ))
    with pytest.raises(ValidationError):
        PlannerFactory().for_request(req)


def test_weekly_planner_requires_start_date():
    req = AssignShiftRequest(user_id=1, shift_type=ShiftType.NIGHT, strategy=AssignmentStrategy.AUTO_WEEKLY)
    with pytest.raises(ValidationError, match="startDate"):
        AutoWeeklyPlanner().plan(req, tz=TZ)


def test_weekly_planner_spans_month_boundary():
    req = AssignShiftRequest(
        user_id=1, shift_type=ShiftType.NIGHT, strategy=AssignmentStrategy.AUTO_WEEKLY, start_date=date(2024, 1, 29)
    )
    planned = AutoWeeklyPlanner().plan(req, tz=TZ)

    assert [p.work_date for p in planned][-1] == date(2024, 2, 4)
    assert planned[-1].window.end == datetime(2024, 2, 5, 6, 0, tzinfo=TZ)


def test_explicit_planner_uses_local_date():
    req = AssignShiftRequest(
        user_id=1,
        shift_type=ShiftType.NIGHT,
        start_time=datetime(2024, 1, 1, 22, tzinfo=TZ),
        end_time=datetime(2024, 1, 2, 6, tzinfo=TZ),
    )
    (planned,) = ExplicitWindowPlanner().plan(req, tz=TZ)
    assert planned.work_date == date(2024, 1, 1)


def test_strategy_parse_defaults_to_user_defined():
    assert AssignmentStrategy.parse("AUTOWEEKLY") is AssignmentStrategy.AUTO_WEEKLY
    assert AssignmentStrategy.parse(None) is AssignmentStrategy.USER_DEFINED
    assert AssignmentStrategy.parse("monthly") is AssignmentStrategy.USER_DEFINED
