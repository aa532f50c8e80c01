from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo

from .common.datetime_utils import load_timezone
from .common.locks import KeyedLock
from .core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_TIMEZONE
from .database.connection import DBConfig, DatabaseConnection
from .overtime.service import OvertimeService
from .scheduling.service import SchedulingService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.repository import ShiftRepository
from .time_records.mysql_time_record_repository import MySQLTimeRecordRepository
from .time_records.repository import TimeRecordRepository
from .time_records.service import SessionService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    tz: tzinfo

    users_repo: UserRepository
    time_records_repo: TimeRecordRepository
    shifts_repo: ShiftRepository

    auth_service: AuthService
    user_service: UserService
    session_service: SessionService
    scheduling_service: SchedulingService
    overtime_service: OvertimeService


def wire(
    *,
    users_repo: UserRepository,
    time_records_repo: TimeRecordRepository,
    shifts_repo: ShiftRepository,
    tz: tzinfo,
) -> Container:
    """Build services on top of the given repositories."""

    return Container(
        tz=tz,
        users_repo=users_repo,
        time_records_repo=time_records_repo,
        shifts_repo=shifts_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        session_service=SessionService(time_records_repo, tz=tz, locks=KeyedLock()),
        scheduling_service=SchedulingService(shifts_repo, users_repo, tz=tz, locks=KeyedLock()),
        overtime_service=OvertimeService(time_records_repo, shifts_repo, tz=tz),
    )


def build_container(
    *,
    db_config: dict,
    timezone_name: str = DEFAULT_TIMEZONE,
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire(
        users_repo=MySQLUserRepository(conn),
        time_records_repo=MySQLTimeRecordRepository(conn),
        shifts_repo=MySQLShiftRepository(conn, lock_timeout=lock_timeout),
        tz=load_timezone(timezone_name),
    )
