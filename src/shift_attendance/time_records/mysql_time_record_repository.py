from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import TimeRecord
from .repository import TimeRecordRepository

_COLUMNS = "record_id, user_id, login_at, logout_at, duration_minutes, user_agent, ip"


def _row_to_record(r: dict) -> TimeRecord:
    duration = r.get("duration_minutes")
    return TimeRecord(
        record_id=int(r["record_id"]),
        user_id=int(r["user_id"]),
        login_at=from_db_datetime(r["login_at"]),
        logout_at=from_db_datetime(r.get("logout_at")),
        duration_minutes=int(duration) if duration is not None else None,
        user_agent=r.get("user_agent"),
        ip=r.get("ip"),
    )


class MySQLTimeRecordRepository(TimeRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[TimeRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_open_for_user(self, user_id: int) -> Optional[TimeRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_records
                WHERE user_id=%s AND logout_at IS NULL
                ORDER BY login_at DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def create_open(
        self,
        *,
        user_id: int,
        login_at: datetime,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> TimeRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO time_records(user_id, login_at, user_agent, ip)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (int(user_id), to_db_datetime(login_at), user_agent, ip),
                )
                record_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError:
            # uq_time_records_one_open: another open session won the race.
            raise ConflictError("An open session already exists for this user")

        return TimeRecord(record_id=record_id, user_id=int(user_id), login_at=login_at, user_agent=user_agent, ip=ip)

    def close(self, *, record_id: int, logout_at: datetime, duration_minutes: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_records
                SET logout_at=%s, duration_minutes=%s
                WHERE record_id=%s AND logout_at IS NULL
                """,
                (to_db_datetime(logout_at), int(duration_minutes), int(record_id)),
            )
            return cur.rowcount > 0

    def admin_update(
        self,
        *,
        record_id: int,
        login_at: datetime,
        logout_at: Optional[datetime],
        duration_minutes: Optional[int],
    ) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE time_records
                    SET login_at=%s, logout_at=%s, duration_minutes=%s
                    WHERE record_id=%s
                    """,
                    (to_db_datetime(login_at), to_db_datetime(logout_at), duration_minutes, int(record_id)),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError:
            raise ConflictError("User already has another open session")

    def delete(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM time_records WHERE record_id=%s", (int(record_id),))
            return cur.rowcount > 0

    def list_records(
        self,
        *,
        user_id: Optional[int] = None,
        login_from: Optional[datetime] = None,
        login_to: Optional[datetime] = None,
        open_only: bool = False,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[Sequence[TimeRecord], int]:
        clauses = ["1=1"]
        params: list[object] = []
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        if open_only:
            clauses.append("logout_at IS NULL")
        if login_from is not None:
            clauses.append("login_at >= %s")
            params.append(to_db_datetime(login_from))
        if login_to is not None:
            clauses.append("login_at <= %s")
            params.append(to_db_datetime(login_to))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM time_records WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)

            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_records
                WHERE {where}
                ORDER BY login_at DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params) + (int(limit), int(offset)),
            )
            return [_row_to_record(r) for r in fetchall(cur)], total

    def list_closed_for_user(self, *, user_id: int, login_from: datetime, login_to: datetime) -> Sequence[TimeRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_records
                WHERE user_id=%s AND logout_at IS NOT NULL AND login_at >= %s AND login_at < %s
                ORDER BY login_at ASC
                """,
                (int(user_id), to_db_datetime(login_from), to_db_datetime(login_to)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_present_users(self, *, day_start: datetime, day_end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT user_id) AS present
                FROM time_records
                WHERE login_at < %s AND (logout_at IS NULL OR logout_at >= %s)
                """,
                (to_db_datetime(day_end), to_db_datetime(day_start)),
            )
            return int((fetchone(cur) or {}).get("present") or 0)
