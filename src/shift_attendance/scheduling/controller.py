from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, parse_iso_instant
from ..common.validators import require_positive_id
from ..common.web import (
    admin_required,
    current_user_id,
    json_body,
    login_required,
    parse_flag,
    parse_optional_int,
    parse_range_bound,
)
from ..container import Container
from ..core.enums import AssignmentStrategy, ShiftStatus, ShiftType
from ..core.exceptions import ValidationError
from .planners import AssignShiftRequest


def register(app: Flask, container: Container) -> None:
    tz = container.tz
    scheduling = container.scheduling_service

    def _optional(value, parser):
        return parser(str(value)) if value not in (None, "") else None

    def _shifts_response(shifts, status: int = 200):
        return jsonify([s.to_dict(tz) for s in shifts]), status

    @app.route("/api/shifts/info", methods=["GET"], endpoint="shifts_info")
    def shift_info():
        return jsonify(scheduling.shift_info())

    @app.route("/api/shifts/my", methods=["GET"], endpoint="shifts_my")
    @login_required
    def my_shifts():
        args = request.args
        shifts = scheduling.list_my_shifts(
            current_user_id(),
            status=_optional(args.get("status"), ShiftStatus.parse),
            upcoming=parse_flag(args.get("upcoming")),
        )
        return _shifts_response(shifts)

    @app.route("/api/shifts/all", methods=["GET"], endpoint="shifts_all")
    @admin_required
    def all_shifts():
        args = request.args
        shifts = scheduling.list_shifts(
            user_id=parse_optional_int(args.get("userId"), "userId"),
            shift_type=_optional(args.get("shiftType"), ShiftType.parse),
            status=_optional(args.get("status"), ShiftStatus.parse),
            start_from=parse_range_bound(args.get("startDate"), tz),
            start_to=parse_range_bound(args.get("endDate"), tz, end=True),
        )
        return _shifts_response(shifts)

    @app.route("/api/shifts/assign", methods=["POST"], endpoint="shifts_assign")
    @admin_required
    def assign_shift():
        data = json_body()
        if not data.get("userId") or not data.get("shiftType"):
            raise ValidationError("userId and shiftType are required")

        req = AssignShiftRequest(
            user_id=require_positive_id(data.get("userId"), "userId"),
            shift_type=ShiftType.parse(data.get("shiftType")),
            strategy=AssignmentStrategy.parse(data.get("strategy")),
            work_date=_optional(data.get("date"), parse_iso_date),
            start_date=_optional(data.get("startDate"), parse_iso_date),
            start_time=_optional(data.get("startTime"), parse_iso_instant),
            end_time=_optional(data.get("endTime"), parse_iso_instant),
            notes=data.get("notes"),
        )
        created = scheduling.assign_shift(req, assigned_by=current_user_id())
        return _shifts_response(created, 201)

    @app.route("/api/shifts/<int:shift_id>", methods=["PUT"], endpoint="shifts_update")
    @admin_required
    def update_shift(shift_id: int):
        data = json_body()
        notes = data.get("notes")
        shift = scheduling.edit_shift(
            shift_id,
            user_id=_optional(data.get("userId"), lambda v: require_positive_id(v, "userId")),
            shift_type=_optional(data.get("shiftType"), ShiftType.parse),
            work_date=_optional(data.get("date"), parse_iso_date),
            notes=notes if isinstance(notes, str) else None,
        )
        return jsonify(shift.to_dict(tz))

    @app.route("/api/shifts/<int:shift_id>/status", methods=["PUT"], endpoint="shifts_update_status")
    @admin_required
    def update_status(shift_id: int):
        data = json_body()
        if not data.get("status"):
            raise ValidationError("Status is required")
        shift = scheduling.update_status(shift_id, ShiftStatus.parse(data["status"]))
        return jsonify(shift.to_dict(tz))

    @app.route("/api/shifts/<int:shift_id>", methods=["DELETE"], endpoint="shifts_delete")
    @admin_required
    def delete_shift(shift_id: int):
        scheduling.delete_shift(shift_id)
        return jsonify({"message": "Shift deleted successfully"})

    @app.route("/api/shifts/stats", methods=["GET"], endpoint="shifts_stats")
    @admin_required
    def shift_stats():
        args = request.args
        stats = scheduling.shift_stats(
            user_id=parse_optional_int(args.get("userId"), "userId"),
            start_from=parse_range_bound(args.get("startDate"), tz),
            start_to=parse_range_bound(args.get("endDate"), tz, end=True),
        )
        return jsonify(stats)
