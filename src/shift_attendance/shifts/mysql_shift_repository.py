from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.enums import ShiftStatus, ShiftType
from ..core.exceptions import ScheduleConflict, ScheduleConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, named_lock, to_db_datetime
from .model import NewShift, Shift
from .repository import ShiftRepository

_COLUMNS = "shift_id, user_id, shift_type, start_time, end_time, assigned_by, notes, status"


def _row_to_shift(r: dict) -> Shift:
    assigned_by = r.get("assigned_by")
    return Shift(
        shift_id=int(r["shift_id"]),
        user_id=int(r["user_id"]),
        shift_type=ShiftType(r["shift_type"]),
        start_time=from_db_datetime(r["start_time"]),
        end_time=from_db_datetime(r["end_time"]),
        assigned_by=int(assigned_by) if assigned_by is not None else None,
        notes=r.get("notes"),
        status=ShiftStatus(r["status"]),
    )


def _start_taken(shift) -> ScheduleConflictError:
    conflicts = [ScheduleConflict(shift.start_time.date(), shift.start_time, shift.end_time)] if shift else []
    return ScheduleConflictError(conflicts, "User already has a shift starting at this time")


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._lock_timeout = int(lock_timeout)

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM shifts WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _row_to_shift(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM shifts WHERE user_id=%s ORDER BY start_time",
                (int(user_id),),
            )
            return [_row_to_shift(r) for r in fetchall(cur)]

    def create_many(self, shifts: Sequence[NewShift]) -> list[Shift]:
        created: list[Shift] = []
        s = None
        try:
            # One transaction for the whole batch: db_cursor rolls back on any error.
            with db_cursor(self._conn_factory) as (_, cur):
                for s in shifts:
                    cur.execute(
                        """
                        INSERT INTO shifts(user_id, shift_type, start_time, end_time, assigned_by, notes, status)
                        VALUES(%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            int(s.user_id),
                            s.shift_type.value,
                            to_db_datetime(s.start_time),
                            to_db_datetime(s.end_time),
                            s.assigned_by,
                            s.notes,
                            s.status.value,
                        ),
                    )
                    created.append(
                        Shift(
                            shift_id=int(cur.lastrowid),
                            user_id=int(s.user_id),
                            shift_type=s.shift_type,
                            start_time=s.start_time,
                            end_time=s.end_time,
                            assigned_by=s.assigned_by,
                            notes=s.notes,
                            status=s.status,
                        )
                    )
        except mysql.connector.IntegrityError:
            # uq_shifts_user_start: a concurrent writer bypassed the user lock.
            raise _start_taken(s)
        return created

    def update(self, shift: Shift) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE shifts
                    SET user_id=%s, shift_type=%s, start_time=%s, end_time=%s, notes=%s
                    WHERE shift_id=%s
                    """,
                    (
                        int(shift.user_id),
                        shift.shift_type.value,
                        to_db_datetime(shift.start_time),
                        to_db_datetime(shift.end_time),
                        shift.notes,
                        int(shift.shift_id),
                    ),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError:
            raise _start_taken(shift)

    def update_status(self, shift_id: int, status: ShiftStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE shifts SET status=%s WHERE shift_id=%s", (status.value, int(shift_id)))
            return cur.rowcount > 0

    def delete(self, shift_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM shifts WHERE shift_id=%s", (int(shift_id),))
            return cur.rowcount > 0

    def list_filtered(
        self,
        *,
        user_id: Optional[int] = None,
        shift_type: Optional[ShiftType] = None,
        status: Optional[ShiftStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        ascending: bool = False,
        limit: int = 1000,
    ) -> Sequence[Shift]:
        clauses = ["1=1"]
        params: list[object] = []
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        if shift_type is not None:
            clauses.append("shift_type=%s")
            params.append(shift_type.value)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if start_from is not None:
            clauses.append("start_time >= %s")
            params.append(to_db_datetime(start_from))
        if start_to is not None:
            clauses.append("start_time <= %s")
            params.append(to_db_datetime(start_to))

        where = " AND ".join(clauses)
        order = "ASC" if ascending else "DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM shifts
                WHERE {where}
                ORDER BY start_time {order}
                LIMIT %s
                """,
                tuple(params) + (int(limit),),
            )
            return [_row_to_shift(r) for r in fetchall(cur)]

    def user_lock(self, user_id: int):
        return named_lock(self._conn_factory, f"shift-user-{int(user_id)}", timeout=self._lock_timeout)
