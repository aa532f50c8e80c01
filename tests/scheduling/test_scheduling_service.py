from __future__ import annotations

import threading
from datetime import date, datetime

import pytest

from shift_attendance.core.enums import AssignmentStrategy, ShiftStatus, ShiftType
from shift_attendance.core.exceptions import NotFoundError, ScheduleConflictError, ValidationError
from shift_attendance.scheduling.planners import AssignShiftRequest


def _single(user_id, shift_type, day, **kw):
    return AssignShiftRequest(user_id=user_id, shift_type=shift_type, work_date=day, **kw)


def test_same_shift_twice_conflicts(scheduling_service, shifts_repo):
    req = _single(2, ShiftType.MORNING, date(2024, 2, 1))
    scheduling_service.assign_shift(req, assigned_by=1)

    with pytest.raises(ScheduleConflictError) as exc:
        scheduling_service.assign_shift(req, assigned_by=1)

    assert exc.value.conflicting_dates == [date(2024, 2, 1)]
    assert len(shifts_repo.items) == 1


def test_night_then_next_morning_touches_without_conflict(scheduling_service, tz):
    (night,) = scheduling_service.assign_shift(_single(2, ShiftType.NIGHT, date(2024, 2, 1)), assigned_by=1)
    (morning,) = scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 2, 2)), assigned_by=1)

    assert night.start_time == datetime(2024, 2, 1, 22, 0, tzinfo=tz)
    assert night.end_time == datetime(2024, 2, 2, 6, 0, tzinfo=tz)
    assert morning.start_time == night.end_time
    assert morning.end_time == datetime(2024, 2, 2, 14, 0, tzinfo=tz)


def test_weekly_batch_is_all_or_nothing(scheduling_service, shifts_repo):
    scheduling_service.assign_shift(_single(2, ShiftType.EVENING, date(2024, 3, 6)), assigned_by=1)
    weekly = AssignShiftRequest(
        user_id=2,
        shift_type=ShiftType.EVENING,
        strategy=AssignmentStrategy.AUTO_WEEKLY,
        start_date=date(2024, 3, 4),
    )

    with pytest.raises(ScheduleConflictError) as exc:
        scheduling_service.assign_shift(weekly, assigned_by=1)

    assert exc.value.conflicting_dates == [date(2024, 3, 6)]
    assert len(shifts_repo.items) == 1


def test_weekly_batch_creates_seven_consecutive_shifts(scheduling_service, tz, shifts_repo):
    weekly = AssignShiftRequest(
        user_id=2,
        shift_type=ShiftType.MORNING,
        strategy=AssignmentStrategy.AUTO_WEEKLY,
        start_date=date(2024, 3, 4),
        notes="  week one  ",
    )

    created = scheduling_service.assign_shift(weekly, assigned_by=1)

    assert [s.start_time.date() for s in created] == [date(2024, 3, d) for d in range(4, 11)]
    assert all(s.notes == "week one" and s.assigned_by == 1 for s in created)
    assert shifts_repo.create_calls == 1


def test_storage_failure_mid_batch_persists_nothing(scheduling_service, shifts_repo):
    shifts_repo.fail_after = 3
    weekly = AssignShiftRequest(
        user_id=2,
        shift_type=ShiftType.NIGHT,
        strategy=AssignmentStrategy.AUTO_WEEKLY,
        start_date=date(2024, 3, 4),
    )

    with pytest.raises(RuntimeError):
        scheduling_service.assign_shift(weekly, assigned_by=1)

    assert shifts_repo.items == {}


def test_concurrent_assignments_only_one_wins(scheduling_service, shifts_repo):
    shifts_repo.read_delay = 0.05
    req = _single(2, ShiftType.MORNING, date(2024, 4, 1))
    barrier = threading.Barrier(2)
    outcomes: list[str] = []

    def worker():
        barrier.wait()
        try:
            scheduling_service.assign_shift(req, assigned_by=1)
            outcomes.append("ok")
        except ScheduleConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert sorted(outcomes) == ["conflict", "ok"]
    assert len(shifts_repo.items) == 1


def test_conflicts_are_per_user(scheduling_service):
    scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)
    created = scheduling_service.assign_shift(_single(3, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)
    assert len(created) == 1


def test_unknown_user_and_missing_date(scheduling_service):
    with pytest.raises(NotFoundError):
        scheduling_service.assign_shift(_single(99, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)

    with pytest.raises(ValidationError, match="date is required"):
        scheduling_service.assign_shift(AssignShiftRequest(user_id=2, shift_type=ShiftType.MORNING), assigned_by=1)


def test_explicit_window_assignment(scheduling_service, tz):
    req = AssignShiftRequest(
        user_id=2,
        shift_type=ShiftType.EVENING,
        start_time=datetime(2024, 4, 1, 15, 0, tzinfo=tz),
        end_time=datetime(2024, 4, 1, 23, 0, tzinfo=tz),
    )
    (shift,) = scheduling_service.assign_shift(req, assigned_by=1)
    assert shift.duration_minutes == 480


def test_edit_excludes_itself_but_detects_others(scheduling_service):
    (monday,) = scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)
    scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 4, 2)), assigned_by=1)

    edited = scheduling_service.edit_shift(monday.shift_id, notes="cover")
    assert edited.notes == "cover"
    assert edited.start_time == monday.start_time

    with pytest.raises(ScheduleConflictError) as exc:
        scheduling_service.edit_shift(monday.shift_id, work_date=date(2024, 4, 2))
    assert exc.value.conflicting_dates == [date(2024, 4, 2)]

    moved = scheduling_service.edit_shift(monday.shift_id, shift_type=ShiftType.EVENING, work_date=date(2024, 4, 2))
    assert moved.shift_type == ShiftType.EVENING


def test_edit_can_reassign_to_another_user(scheduling_service, shifts_repo):
    (shift,) = scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)

    moved = scheduling_service.edit_shift(shift.shift_id, user_id=3)

    assert moved.user_id == 3
    assert shifts_repo.get_by_id(shift.shift_id).user_id == 3


def test_delete_and_status_of_unknown_shift(scheduling_service):
    with pytest.raises(NotFoundError):
        scheduling_service.delete_shift(404)
    with pytest.raises(NotFoundError):
        scheduling_service.update_status(404, ShiftStatus.CONFIRMED)
    with pytest.raises(NotFoundError):
        scheduling_service.edit_shift(404, notes="x")


def test_listing_and_stats(scheduling_service, tz):
    a, b = (
        scheduling_service.assign_shift(_single(2, t, date(2024, 4, 1)), assigned_by=1)[0]
        for t in (ShiftType.MORNING, ShiftType.EVENING)
    )
    scheduling_service.assign_shift(_single(3, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)
    scheduling_service.update_status(a.shift_id, ShiftStatus.CONFIRMED)

    mine = scheduling_service.list_my_shifts(2)
    assert [s.shift_id for s in mine] == [a.shift_id, b.shift_id]

    upcoming = scheduling_service.list_my_shifts(2, upcoming=True, now=datetime(2024, 4, 1, 10, 0, tzinfo=tz))
    assert [s.shift_id for s in upcoming] == [b.shift_id]

    confirmed = scheduling_service.list_shifts(status=ShiftStatus.CONFIRMED)
    assert [s.shift_id for s in confirmed] == [a.shift_id]

    stats = scheduling_service.shift_stats()
    assert stats == [
        {"shiftType": "morning", "count": 2, "confirmed": 1, "completed": 0},
        {"shiftType": "evening", "count": 1, "confirmed": 0, "completed": 0},
    ]


def test_shift_info(scheduling_service):
    info = scheduling_service.shift_info()
    assert info["shiftTypes"] == ["morning", "evening", "night"]
    assert info["strategies"] == ["userDefined", "autoWeekly"]
    assert info["timezone"] == "Australia/Brisbane"


def test_edit_keeps_status_changed_during_edit(scheduling_service, shifts_repo, monkeypatch):
    (shift,) = scheduling_service.assign_shift(_single(2, ShiftType.MORNING, date(2024, 4, 1)), assigned_by=1)
    read_shifts = shifts_repo.list_for_user

    def confirm_while_reading(user_id):
        shifts_repo.update_status(shift.shift_id, ShiftStatus.CONFIRMED)
        return read_shifts(user_id)

    monkeypatch.setattr(shifts_repo, "list_for_user", confirm_while_reading)

    edited = scheduling_service.edit_shift(shift.shift_id, notes="cover")

    assert edited.status == ShiftStatus.CONFIRMED
    assert shifts_repo.get_by_id(shift.shift_id).status == ShiftStatus.CONFIRMED
    assert shifts_repo.get_by_id(shift.shift_id).notes == "cover"


def test_status_update_is_returned(scheduling_service):
    (shift,) = scheduling_service.assign_shift(_single(2, ShiftType.NIGHT, date(2024, 4, 1)), assigned_by=1)
    assert scheduling_service.update_status(shift.shift_id, ShiftStatus.COMPLETED).status == ShiftStatus.COMPLETED
