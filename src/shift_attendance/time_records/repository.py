from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import TimeRecord


class TimeRecordRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[TimeRecord]:
        raise NotImplementedError

    def get_open_for_user(self, user_id: int) -> Optional[TimeRecord]:
        raise NotImplementedError

    def create_open(
        self,
        *,
        user_id: int,
        login_at: datetime,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> TimeRecord:
        """Insert an open session.

        Must raise ConflictError if the store already holds an open session
        for the user.
        """

        raise NotImplementedError

    def close(self, *, record_id: int, logout_at: datetime, duration_minutes: int) -> bool:
        """Close the record only if it is still open. Returns False otherwise."""

        raise NotImplementedError

    def admin_update(
        self,
        *,
        record_id: int,
        login_at: datetime,
        logout_at: Optional[datetime],
        duration_minutes: Optional[int],
    ) -> bool:
        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        raise NotImplementedError

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
        """Newest first. Returns (items, total matching count)."""

        raise NotImplementedError

    def list_closed_for_user(self, *, user_id: int, login_from: datetime, login_to: datetime) -> Sequence[TimeRecord]:
        raise NotImplementedError

    def count_present_users(self, *, day_start: datetime, day_end: datetime) -> int:
        """Distinct users with a session overlapping [day_start, day_end)."""

        raise NotImplementedError
