from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import local_date, now_utc
from ..common.locks import KeyedLock
from ..common.validators import clean_optional_text
from ..core.constants import DEFAULT_SHIFT_LIST_LIMIT
from ..core.enums import AssignmentStrategy, ShiftStatus, ShiftType
from ..core.exceptions import InvalidStateError, NotFoundError, ScheduleConflict, ScheduleConflictError
from ..shifts.model import NewShift, Shift
from ..shifts.repository import ShiftRepository
from ..shifts.windows import find_conflicts, time_ranges, window_for_type
from ..users.repository import UserRepository
from .planners import AssignShiftRequest, PlannerFactory

log = logging.getLogger(__name__)


class SchedulingService:
    """Admin shift assignment with all-or-nothing conflict semantics.

    Every read-check-write runs under a per-user lock (in-process, plus the
    repository's cross-process lock) against one snapshot of the user's
    shifts, and a batch is written with a single repository call.
    """

    def __init__(
        self,
        shifts: ShiftRepository,
        users: UserRepository,
        *,
        tz: tzinfo,
        planner_factory: Optional[PlannerFactory] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self._shifts = shifts
        self._users = users
        self._tz = tz
        self._factory = planner_factory or PlannerFactory()
        self._locks = locks or KeyedLock()

    def _require_user(self, user_id: int) -> None:
        if not self._users.get_by_id(int(user_id)):
            raise NotFoundError("User not found")

    def _require_shift(self, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    def assign_shift(self, request: AssignShiftRequest, *, assigned_by: Optional[int]) -> list[Shift]:
        self._require_user(request.user_id)
        planned = self._factory.for_request(request).plan(request, tz=self._tz)
        notes = clean_optional_text(request.notes)

        with self._locks.hold(request.user_id), self._shifts.user_lock(request.user_id):
            existing = list(self._shifts.list_for_user(request.user_id))
            conflicts = [
                ScheduleConflict(p.work_date, p.window.start, p.window.end)
                for p in planned
                if find_conflicts(p.window.start, p.window.end, existing)
            ]
            if conflicts:
                log.warning(
                    "assign rejected: user=%s type=%s conflicts=%s",
                    request.user_id,
                    request.shift_type.value,
                    [c.work_date.isoformat() for c in conflicts],
                )
                raise ScheduleConflictError(conflicts)

            created = self._shifts.create_many(
                [
                    NewShift(
                        user_id=request.user_id,
                        shift_type=request.shift_type,
                        start_time=p.window.start,
                        end_time=p.window.end,
                        assigned_by=assigned_by,
                        notes=notes,
                    )
                    for p in planned
                ]
            )

        log.info(
            "shifts assigned: user=%s type=%s strategy=%s count=%s",
            request.user_id,
            request.shift_type.value,
            request.strategy.value,
            len(created),
        )
        return sorted(created, key=lambda s: s.start_time)

    def edit_shift(
        self,
        shift_id: int,
        *,
        user_id: Optional[int] = None,
        shift_type: Optional[ShiftType] = None,
        work_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Shift:
        shift = self._require_shift(shift_id)

        target_user = shift.user_id
        if user_id is not None and int(user_id) != shift.user_id:
            self._require_user(user_id)
            target_user = int(user_id)

        new_type = shift_type or shift.shift_type
        day = work_date or local_date(shift.start_time, self._tz)
        window = shift.window
        if shift_type is not None or work_date is not None:
            window = window_for_type(new_type, day, tz=self._tz)

        with self._locks.hold(target_user), self._shifts.user_lock(target_user):
            existing = self._shifts.list_for_user(target_user)
            # Fresh copy so a status change made since the first read is kept.
            shift = self._require_shift(shift_id)
            if find_conflicts(window.start, window.end, existing, exclude_id=shift.shift_id):
                log.warning("edit rejected: shift=%s user=%s date=%s", shift.shift_id, target_user, day)
                raise ScheduleConflictError([ScheduleConflict(day, window.start, window.end)])

            updated = replace(
                shift,
                user_id=target_user,
                shift_type=new_type,
                start_time=window.start,
                end_time=window.end,
                notes=clean_optional_text(notes) if notes is not None else shift.notes,
            )
            if not self._shifts.update(updated):
                raise NotFoundError("Shift not found")

        log.info("shift edited: shift=%s user=%s type=%s", shift.shift_id, target_user, new_type.value)
        return updated

    def delete_shift(self, shift_id: int) -> None:
        if not self._shifts.delete(int(shift_id)):
            raise NotFoundError("Shift not found")
        log.info("shift deleted: shift=%s", shift_id)

    def update_status(self, shift_id: int, status: ShiftStatus) -> Shift:
        shift = self._require_shift(shift_id)
        with self._locks.hold(shift.user_id), self._shifts.user_lock(shift.user_id):
            shift = self._require_shift(shift_id)
            if not self._shifts.update_status(shift.shift_id, status):
                raise NotFoundError("Shift not found")
        log.info("shift status changed: shift=%s status=%s", shift.shift_id, status.value)
        return replace(shift, status=status)

    def list_shifts(
        self,
        *,
        user_id: Optional[int] = None,
        shift_type: Optional[ShiftType] = None,
        status: Optional[ShiftStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> list[Shift]:
        if start_from and start_to and start_to < start_from:
            raise InvalidStateError("endDate must not be earlier than startDate")
        return list(
            self._shifts.list_filtered(
                user_id=user_id,
                shift_type=shift_type,
                status=status,
                start_from=start_from,
                start_to=start_to,
                limit=DEFAULT_SHIFT_LIST_LIMIT,
            )
        )

    def list_my_shifts(
        self,
        user_id: int,
        *,
        status: Optional[ShiftStatus] = None,
        upcoming: bool = False,
        now: Optional[datetime] = None,
    ) -> list[Shift]:
        return list(
            self._shifts.list_filtered(
                user_id=int(user_id),
                status=status,
                start_from=(now or now_utc()) if upcoming else None,
                ascending=True,
                limit=DEFAULT_SHIFT_LIST_LIMIT,
            )
        )

    def shift_stats(
        self,
        *,
        user_id: Optional[int] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> list[dict]:
        """Per shift type: total, confirmed and completed counts."""

        stats: dict[ShiftType, dict] = {}
        for s in self.list_shifts(user_id=user_id, start_from=start_from, start_to=start_to):
            row = stats.setdefault(s.shift_type, {"shiftType": s.shift_type.value, "count": 0, "confirmed": 0, "completed": 0})
            row["count"] += 1
            if s.status == ShiftStatus.CONFIRMED:
                row["confirmed"] += 1
            elif s.status == ShiftStatus.COMPLETED:
                row["completed"] += 1
        return [stats[t] for t in ShiftType if t in stats]

    def shift_info(self) -> dict:
        return {
            "shiftTypes": [t.value for t in ShiftType],
            "timeRanges": time_ranges(),
            "strategies": [s.value for s in AssignmentStrategy],
            "timezone": str(self._tz),
        }
