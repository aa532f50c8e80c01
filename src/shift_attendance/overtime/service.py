from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, tzinfo
from typing import Optional

from ..common.datetime_utils import local_date, local_day_bounds
from ..core.enums import ShiftStatus
from ..core.exceptions import InvalidStateError, NotFoundError
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..time_records.model import TimeRecord
from ..time_records.repository import TimeRecordRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OvertimeResult:
    record_id: int
    user_id: int
    has_overtime: bool
    message: str
    shift_id: Optional[int] = None
    shift_minutes: int = 0
    actual_minutes: int = 0
    overtime_minutes: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["overtime_hours"] = round(self.overtime_minutes / 60, 2)
        return data


class OvertimeService:
    """Overtime = minutes worked in a closed session beyond that day's shift."""

    def __init__(self, records: TimeRecordRepository, shifts: ShiftRepository, *, tz: tzinfo):
        self._records = records
        self._shifts = shifts
        self._tz = tz

    def _shift_for(self, record: TimeRecord) -> Optional[Shift]:
        day_start, day_end = local_day_bounds(local_date(record.login_at, self._tz), self._tz)
        candidates = self._shifts.list_filtered(
            user_id=record.user_id,
            start_from=day_start,
            start_to=day_end,
            ascending=True,
        )
        for s in candidates:
            if s.start_time < day_end and s.status != ShiftStatus.CANCELLED:
                return s
        return None

    def _calculate(self, record: TimeRecord) -> OvertimeResult:
        actual = int(record.duration_minutes or 0)
        shift = self._shift_for(record)
        if not shift:
            return OvertimeResult(
                record_id=record.record_id,
                user_id=record.user_id,
                has_overtime=False,
                message="No shift found for this day",
                actual_minutes=actual,
            )

        overtime = max(0, actual - shift.duration_minutes)
        return OvertimeResult(
            record_id=record.record_id,
            user_id=record.user_id,
            has_overtime=overtime > 0,
            message="Worked beyond assigned shift" if overtime else "Worked within assigned shift hours",
            shift_id=shift.shift_id,
            shift_minutes=shift.duration_minutes,
            actual_minutes=actual,
            overtime_minutes=overtime,
        )

    def calculate_for_record(self, record_id: int) -> OvertimeResult:
        record = self._records.get_by_id(int(record_id))
        if not record:
            raise NotFoundError("Time record not found")
        if record.is_open:
            raise InvalidStateError("Time record must be closed before calculating overtime")
        return self._calculate(record)

    def summarize(self, user_id: int, *, start_date: date, end_date: date) -> dict:
        if end_date < start_date:
            raise InvalidStateError("end date must not be earlier than start date")

        range_start, _ = local_day_bounds(start_date, self._tz)
        _, range_end = local_day_bounds(end_date, self._tz)
        records = self._records.list_closed_for_user(user_id=int(user_id), login_from=range_start, login_to=range_end)
        results = [self._calculate(r) for r in records]

        total_overtime = sum(r.overtime_minutes for r in results)
        log.info("overtime summary: user=%s records=%s minutes=%s", user_id, len(results), total_overtime)
        return {
            "userId": int(user_id),
            "from": start_date.isoformat(),
            "to": end_date.isoformat(),
            "totalRecords": len(results),
            "overtimeRecords": sum(1 for r in results if r.has_overtime),
            "totalWorkedMinutes": sum(r.actual_minutes for r in results),
            "totalOvertimeMinutes": total_overtime,
            "totalOvertimeHours": round(total_overtime / 60, 2),
        }
