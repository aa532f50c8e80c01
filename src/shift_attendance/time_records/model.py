from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import local_parts


@dataclass(frozen=True)
class TimeRecord:
    """Domain entity: one login-to-logout attendance session.

    ``logout_at is None`` means the session is still open.
    """

    record_id: int
    user_id: int
    login_at: datetime
    logout_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    user_agent: Optional[str] = None
    ip: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.logout_at is None

    def to_dict(self, tz: tzinfo) -> dict:
        return {
            "id": self.record_id,
            "user": self.user_id,
            "loginAt": self.login_at.isoformat(),
            "logoutAt": self.logout_at.isoformat() if self.logout_at else None,
            "loginLocal": local_parts(self.login_at, tz),
            "logoutLocal": local_parts(self.logout_at, tz),
            "durationMinutes": self.duration_minutes,
            "userAgent": self.user_agent,
            "ip": self.ip,
        }
