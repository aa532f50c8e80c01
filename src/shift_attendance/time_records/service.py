from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import local_date, local_day_bounds, minutes_between, now_utc, to_utc
from ..common.locks import KeyedLock
from ..common.pagination import Page, normalize_paging
from ..core.exceptions import ConflictError, InvalidStateError, NotFoundError
from .model import TimeRecord
from .repository import TimeRecordRepository

log = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


class SessionService:
    """Session lifecycle: at most one open TimeRecord per user.

    Login opens a session, logout closes it. Opening while a session is
    already open is rejected with ConflictError; callers that want to resume
    the existing session (e.g. the login endpoint) catch it and read
    ``get_open_session``.
    """

    def __init__(self, records: TimeRecordRepository, *, tz: tzinfo, locks: Optional[KeyedLock] = None):
        self._records = records
        self._tz = tz
        self._locks = locks or KeyedLock()

    def open_session(
        self,
        user_id: int,
        *,
        now: Optional[datetime] = None,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> TimeRecord:
        login_at = to_utc(now or now_utc())

        with self._locks.hold(int(user_id)):
            existing = self._records.get_open_for_user(int(user_id))
            if existing:
                log.warning("open_session rejected: user=%s already has open record=%s", user_id, existing.record_id)
                raise ConflictError("An open session already exists for this user")

            record = self._records.create_open(user_id=int(user_id), login_at=login_at, user_agent=user_agent, ip=ip)

        log.info("session opened: user=%s record=%s", user_id, record.record_id)
        return record

    def close_session(self, user_id: int, *, now: Optional[datetime] = None) -> TimeRecord:
        logout_at = to_utc(now or now_utc())

        with self._locks.hold(int(user_id)):
            record = self._records.get_open_for_user(int(user_id))
            if not record:
                log.warning("close_session with no open session: user=%s", user_id)
                raise NotFoundError("No open session to check out")
            if logout_at < to_utc(record.login_at):
                raise InvalidStateError("Logout time cannot be earlier than login time")

            duration = minutes_between(record.login_at, logout_at)
            if not self._records.close(record_id=record.record_id, logout_at=logout_at, duration_minutes=duration):
                raise NotFoundError("No open session to check out")

        log.info("session closed: user=%s record=%s minutes=%s", user_id, record.record_id, duration)
        return replace(record, logout_at=logout_at, duration_minutes=duration)

    def get_open_session(self, user_id: int) -> Optional[TimeRecord]:
        return self._records.get_open_for_user(int(user_id))

    def live_minutes(self, record: TimeRecord, *, now: Optional[datetime] = None) -> int:
        """Elapsed minutes for a session; closed sessions report their duration."""

        if not record.is_open:
            return int(record.duration_minutes or 0)
        return max(0, minutes_between(record.login_at, now or now_utc()))

    def admin_edit_session(self, record_id: int, *, login_at=UNSET, logout_at=UNSET) -> TimeRecord:
        """Administrative override of a record's endpoints.

        ``logout_at=None`` reopens the record; an instant force-closes it or
        moves the close time. No overlap check against the user's other
        records is made.
        """

        record = self._records.get_by_id(int(record_id))
        if not record:
            raise NotFoundError("Time record not found")

        new_login = record.login_at if login_at is UNSET else login_at
        new_logout = record.logout_at if logout_at is UNSET else logout_at
        if new_login is None:
            raise InvalidStateError("Login time is required")

        new_login = to_utc(new_login)
        new_logout = to_utc(new_logout) if new_logout is not None else None

        duration = None
        if new_logout is not None:
            if new_logout < new_login:
                raise InvalidStateError("Logout time cannot be earlier than login time")
            duration = minutes_between(new_login, new_logout)

        with self._locks.hold(record.user_id):
            if new_logout is None:
                other = self._records.get_open_for_user(record.user_id)
                if other and other.record_id != record.record_id:
                    raise ConflictError("User already has another open session")

            ok = self._records.admin_update(
                record_id=record.record_id,
                login_at=new_login,
                logout_at=new_logout,
                duration_minutes=duration,
            )
            if not ok:
                raise NotFoundError("Time record not found")

        log.info("session edited by admin: record=%s open=%s", record.record_id, new_logout is None)
        return replace(record, login_at=new_login, logout_at=new_logout, duration_minutes=duration)

    def admin_delete_session(self, record_id: int) -> None:
        if not self._records.delete(int(record_id)):
            raise NotFoundError("Time record not found")
        log.info("session deleted by admin: record=%s", record_id)

    def list_for_user(
        self,
        user_id: int,
        *,
        page=1,
        limit=None,
        login_from: Optional[datetime] = None,
        login_to: Optional[datetime] = None,
        open_only: bool = False,
    ) -> Page[TimeRecord]:
        return self.admin_list(
            user_id=int(user_id),
            page=page,
            limit=limit,
            login_from=login_from,
            login_to=login_to,
            open_only=open_only,
        )

    def admin_list(
        self,
        *,
        user_id: Optional[int] = None,
        page=1,
        limit=None,
        login_from: Optional[datetime] = None,
        login_to: Optional[datetime] = None,
        open_only: bool = False,
    ) -> Page[TimeRecord]:
        if login_from and login_to and to_utc(login_to) < to_utc(login_from):
            raise InvalidStateError("'to' must not be earlier than 'from'")

        page, limit = normalize_paging(page, limit)
        items, total = self._records.list_records(
            user_id=user_id,
            login_from=login_from,
            login_to=login_to,
            open_only=open_only,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return Page(items=list(items), page=page, limit=limit, total=total)

    def present_today_count(self, *, now: Optional[datetime] = None) -> tuple[int, date]:
        """Distinct users whose session overlaps today (organisation time zone)."""

        today = local_date(now or now_utc(), self._tz)
        day_start, day_end = local_day_bounds(today, self._tz)
        return self._records.count_present_users(day_start=day_start, day_end=day_end), today
