from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record (or open session) does not exist."""


class ConflictError(DomainError):
    """Raised when an operation collides with existing state."""


class InvalidStateError(DomainError):
    """Raised when timestamps or a date range are inconsistent."""


@dataclass(frozen=True)
class ScheduleConflict:
    work_date: date
    start_time: datetime
    end_time: datetime

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
        }


class ScheduleConflictError(ConflictError):
    """Candidate shift window(s) overlap shifts the user already has."""

    def __init__(self, conflicts: Sequence[ScheduleConflict], message: str | None = None):
        self.conflicts = tuple(conflicts)
        if message is None:
            days = ", ".join(d.isoformat() for d in self.conflicting_dates)
            message = f"User already has a shift during this time period ({days})"
        super().__init__(message)

    @property
    def conflicting_dates(self) -> list[date]:
        return [c.work_date for c in self.conflicts]
