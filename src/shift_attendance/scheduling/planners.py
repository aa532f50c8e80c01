from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from ..common.datetime_utils import local_date
from ..core.constants import WEEK_LENGTH_DAYS
from ..core.enums import AssignmentStrategy, ShiftType
from ..core.exceptions import ValidationError
from ..shifts.model import ShiftWindow
from ..shifts.windows import validate_window_for_type, window_for_type


@dataclass(frozen=True)
class AssignShiftRequest:
    """Ephemeral admin request; never persisted."""

    user_id: int
    shift_type: ShiftType
    strategy: AssignmentStrategy = AssignmentStrategy.USER_DEFINED
    work_date: Optional[date] = None
    start_date: Optional[date] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PlannedWindow:
    work_date: date
    window: ShiftWindow


class AssignmentPlanner(ABC):
    """Strategy Pattern: expand a request into concrete shift windows."""

    @abstractmethod
    def plan(self, request: AssignShiftRequest, *, tz: tzinfo) -> list[PlannedWindow]:
        raise NotImplementedError


class UserDefinedPlanner(AssignmentPlanner):
    """One canonical window on the requested date."""

    def plan(self, request: AssignShiftRequest, *, tz: tzinfo) -> list[PlannedWindow]:
        if request.work_date is None:
            raise ValidationError("date is required for userDefined strategy")
        return [PlannedWindow(request.work_date, window_for_type(request.shift_type, request.work_date, tz=tz))]


class AutoWeeklyPlanner(AssignmentPlanner):
    """Seven consecutive daily windows starting at the anchor date."""

    def plan(self, request: AssignShiftRequest, *, tz: tzinfo) -> list[PlannedWindow]:
        if request.start_date is None:
            raise ValidationError("startDate is required for autoWeekly strategy")
        days = [request.start_date + timedelta(days=i) for i in range(WEEK_LENGTH_DAYS)]
        return [PlannedWindow(d, window_for_type(request.shift_type, d, tz=tz)) for d in days]


class ExplicitWindowPlanner(AssignmentPlanner):
    """Caller-supplied start/end, checked against the type's start hours."""

    def plan(self, request: AssignShiftRequest, *, tz: tzinfo) -> list[PlannedWindow]:
        window = ShiftWindow(request.start_time, request.end_time)
        validate_window_for_type(request.shift_type, window, tz=tz)
        return [PlannedWindow(local_date(window.start, tz), window)]


@dataclass
class PlannerFactory:
    """Factory Pattern: choose the planner for a request."""

    def for_request(self, request: AssignShiftRequest) -> AssignmentPlanner:
        if request.start_time is not None or request.end_time is not None:
            if request.start_time is None or request.end_time is None:
                raise ValidationError("Both startTime and endTime are required for an explicit window")
            return ExplicitWindowPlanner()
        if request.strategy == AssignmentStrategy.AUTO_WEEKLY:
            return AutoWeeklyPlanner()
        return UserDefinedPlanner()
