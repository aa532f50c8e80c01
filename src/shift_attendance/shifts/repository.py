from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ShiftStatus, ShiftType
from .model import NewShift, Shift


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Shift]:
        """Every shift of the user (the conflict-check snapshot)."""

        raise NotImplementedError

    def create_many(self, shifts: Sequence[NewShift]) -> list[Shift]:
        """Persist all shifts in one atomic write; nothing is kept on failure."""

        raise NotImplementedError

    def update(self, shift: Shift) -> bool:
        """Write user, type, window and notes. Status only changes through update_status."""
        raise NotImplementedError

    def update_status(self, shift_id: int, status: ShiftStatus) -> bool:
        raise NotImplementedError

    def delete(self, shift_id: int) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def user_lock(self, user_id: int) -> AbstractContextManager:
        """Serialize read-check-write sequences for one user across processes."""

        raise NotImplementedError
