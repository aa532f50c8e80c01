from __future__ import annotations

import threading
import time as time_module
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import pytest
from werkzeug.security import generate_password_hash

from shift_attendance.container import wire
from shift_attendance.core.enums import Role, ShiftStatus
from shift_attendance.core.exceptions import ConflictError
from shift_attendance.main import create_app
from shift_attendance.shifts.model import Shift
from shift_attendance.time_records.model import TimeRecord
from shift_attendance.users.model import User

TZ = ZoneInfo("Australia/Brisbane")

_ADMIN_HASH = generate_password_hash("admin123")
_EMPLOYEE_HASH = generate_password_hash("employee123")


class InMemoryUsers:
    def __init__(self, users):
        self.users_by_id: dict[int, User] = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users_by_id.values() if u.email == email), None)


class InMemoryTimeRecords:
    def __init__(self):
        self.items: dict[int, TimeRecord] = {}
        self._id = 0
        self._guard = threading.Lock()

    def _open_for(self, user_id: int) -> list[TimeRecord]:
        return [r for r in self.items.values() if r.user_id == user_id and r.logout_at is None]

    def get_by_id(self, record_id: int) -> Optional[TimeRecord]:
        return self.items.get(int(record_id))

    def get_open_for_user(self, user_id: int) -> Optional[TimeRecord]:
        open_records = sorted(self._open_for(int(user_id)), key=lambda r: r.login_at, reverse=True)
        return open_records[0] if open_records else None

    def create_open(self, *, user_id, login_at, user_agent=None, ip=None) -> TimeRecord:
        with self._guard:
            # Same guarantee as the unique key in MySQL.
            if self._open_for(int(user_id)):
                raise ConflictError("An open session already exists for this user")
            self._id += 1
            record = TimeRecord(record_id=self._id, user_id=int(user_id), login_at=login_at, user_agent=user_agent, ip=ip)
            self.items[self._id] = record
            return record

    def close(self, *, record_id, logout_at, duration_minutes) -> bool:
        record = self.items.get(int(record_id))
        if not record or record.logout_at is not None:
            return False
        self.items[record.record_id] = replace(record, logout_at=logout_at, duration_minutes=duration_minutes)
        return True

    def admin_update(self, *, record_id, login_at, logout_at, duration_minutes) -> bool:
        record = self.items.get(int(record_id))
        if not record:
            return False
        if logout_at is None and any(r.record_id != record.record_id for r in self._open_for(record.user_id)):
            raise ConflictError("User already has another open session")
        self.items[record.record_id] = replace(
            record, login_at=login_at, logout_at=logout_at, duration_minutes=duration_minutes
        )
        return True

    def delete(self, record_id: int) -> bool:
        return self.items.pop(int(record_id), None) is not None

    def list_records(self, *, user_id=None, login_from=None, login_to=None, open_only=False, offset=0, limit=10):
        rows = [
            r
            for r in self.items.values()
            if (user_id is None or r.user_id == user_id)
            and (not open_only or r.logout_at is None)
            and (login_from is None or r.login_at >= login_from)
            and (login_to is None or r.login_at <= login_to)
        ]
        rows.sort(key=lambda r: r.login_at, reverse=True)
        return rows[offset : offset + limit], len(rows)

    def list_closed_for_user(self, *, user_id, login_from, login_to):
        rows = [
            r
            for r in self.items.values()
            if r.user_id == user_id and r.logout_at is not None and login_from <= r.login_at < login_to
        ]
        return sorted(rows, key=lambda r: r.login_at)

    def count_present_users(self, *, day_start, day_end) -> int:
        return len(
            {
                r.user_id
                for r in self.items.values()
                if r.login_at < day_end and (r.logout_at is None or r.logout_at >= day_start)
            }
        )


class InMemoryShifts:
    """Shift store fake.

    ``read_delay`` widens the read-check-write window for race tests;
    ``fail_after`` makes ``create_many`` blow up part way through a batch.
    """

    def __init__(self):
        self.items: dict[int, Shift] = {}
        self._id = 0
        self.read_delay = 0.0
        self.fail_after: Optional[int] = None
        self.create_calls = 0

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        return self.items.get(int(shift_id))

    def list_for_user(self, user_id: int):
        rows = [s for s in self.items.values() if s.user_id == int(user_id)]
        if self.read_delay:
            time_module.sleep(self.read_delay)
        return sorted(rows, key=lambda s: s.start_time)

    def create_many(self, shifts):
        self.create_calls += 1
        staged: list[Shift] = []
        next_id = self._id
        for i, s in enumerate(shifts):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("simulated storage failure")
            next_id += 1
            staged.append(
                Shift(
                    shift_id=next_id,
                    user_id=s.user_id,
                    shift_type=s.shift_type,
                    start_time=s.start_time,
                    end_time=s.end_time,
                    assigned_by=s.assigned_by,
                    notes=s.notes,
                    status=s.status,
                )
            )
        # commit
        self._id = next_id
        for s in staged:
            self.items[s.shift_id] = s
        return staged

    def update(self, shift: Shift) -> bool:
        stored = self.items.get(shift.shift_id)
        if not stored:
            return False
        self.items[shift.shift_id] = replace(shift, status=stored.status)
        return True

    def update_status(self, shift_id: int, status: ShiftStatus) -> bool:
        shift = self.items.get(int(shift_id))
        if not shift:
            return False
        self.items[shift.shift_id] = replace(shift, status=status)
        return True

    def delete(self, shift_id: int) -> bool:
        return self.items.pop(int(shift_id), None) is not None

    def list_filtered(
        self,
        *,
        user_id=None,
        shift_type=None,
        status=None,
        start_from=None,
        start_to=None,
        ascending=False,
        limit=1000,
    ):
        rows = [
            s
            for s in self.items.values()
            if (user_id is None or s.user_id == user_id)
            and (shift_type is None or s.shift_type == shift_type)
            and (status is None or s.status == status)
            and (start_from is None or s.start_time >= start_from)
            and (start_to is None or s.start_time <= start_to)
        ]
        rows.sort(key=lambda s: s.start_time, reverse=not ascending)
        return rows[:limit]

    def user_lock(self, user_id: int):
        return nullcontext()


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def fixed_now():
    return datetime(2024, 1, 15, 9, 0, tzinfo=TZ)


@pytest.fixture
def users_repo():
    return InMemoryUsers(
        [
            User(1, "Admin Demo", "admin@example.com", _ADMIN_HASH, Role.ADMIN, "Operations"),
            User(2, "Employee One", "employee@example.com", _EMPLOYEE_HASH, Role.EMPLOYEE, "Support"),
            User(3, "Employee Two", "employee2@example.com", _EMPLOYEE_HASH, Role.EMPLOYEE, "Support"),
        ]
    )


@pytest.fixture
def time_records_repo():
    return InMemoryTimeRecords()


@pytest.fixture
def shifts_repo():
    return InMemoryShifts()


@pytest.fixture
def container(users_repo, time_records_repo, shifts_repo):
    return wire(users_repo=users_repo, time_records_repo=time_records_repo, shifts_repo=shifts_repo, tz=TZ)


@pytest.fixture
def session_service(container):
    return container.session_service


@pytest.fixture
def scheduling_service(container):
    return container.scheduling_service


@pytest.fixture
def overtime_service(container):
    return container.overtime_service


@pytest.fixture
def app(container):
    return create_app(container=container, settings_module="config.testing")


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email: str, password: str):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    _login(c, "admin@example.com", "admin123")
    return c


@pytest.fixture
def employee_client(app):
    c = app.test_client()
    _login(c, "employee@example.com", "employee123")
    return c
