from __future__ import annotations

from enum import Enum

from .exceptions import ValidationError


class Role(str, Enum):
    """User role used for authorization at the API boundary."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class ShiftType(str, Enum):
    """Shift type; each maps to a canonical time-of-day window."""

    MORNING = "morning"
    EVENING = "evening"
    NIGHT = "night"

    @classmethod
    def parse(cls, value: str) -> "ShiftType":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown shift type: {value}")


class ShiftStatus(str, Enum):
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str) -> "ShiftStatus":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError("Invalid status")


class AssignmentStrategy(str, Enum):
    """How an assignment request expands into concrete shift windows."""

    USER_DEFINED = "userDefined"
    AUTO_WEEKLY = "autoWeekly"

    @classmethod
    def parse(cls, value: str | None) -> "AssignmentStrategy":
        # Unknown or empty strategies fall back to a single user-defined shift.
        if (value or "").strip().lower() == "autoweekly":
            return cls.AUTO_WEEKLY
        return cls.USER_DEFINED
