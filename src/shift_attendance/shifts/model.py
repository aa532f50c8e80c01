from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import local_parts, minutes_between
from ..core.enums import ShiftStatus, ShiftType


@dataclass(frozen=True)
class ShiftWindow:
    """Concrete [start, end) interval of a shift, as aware instants."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Shift:
    """Domain entity: a shift assigned to a user by an administrator."""

    shift_id: int
    user_id: int
    shift_type: ShiftType
    start_time: datetime
    end_time: datetime
    assigned_by: Optional[int] = None
    notes: Optional[str] = None
    status: ShiftStatus = ShiftStatus.ASSIGNED

    @property
    def window(self) -> ShiftWindow:
        return ShiftWindow(self.start_time, self.end_time)

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)

    def to_dict(self, tz: tzinfo) -> dict:
        return {
            "id": self.shift_id,
            "userId": self.user_id,
            "shiftType": self.shift_type.value,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "startLocal": local_parts(self.start_time, tz),
            "endLocal": local_parts(self.end_time, tz),
            "assignedBy": self.assigned_by,
            "notes": self.notes or "",
            "status": self.status.value,
        }


@dataclass(frozen=True)
class NewShift:
    """Shift data before it has been persisted."""

    user_id: int
    shift_type: ShiftType
    start_time: datetime
    end_time: datetime
    assigned_by: Optional[int] = None
    notes: Optional[str] = None
    status: ShiftStatus = ShiftStatus.ASSIGNED
