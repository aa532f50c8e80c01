from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, parse_iso_instant
from ..common.web import (
    admin_required,
    client_ip,
    current_user_id,
    json_body,
    login_required,
    parse_flag,
    parse_optional_int,
    parse_range_bound,
)
from ..container import Container
from ..core.exceptions import ValidationError
from .service import UNSET


def register(app: Flask, container: Container) -> None:
    tz = container.tz
    sessions = container.session_service

    def _page_response(page):
        return jsonify(
            {
                "success": True,
                "records": [r.to_dict(tz) for r in page.items],
                "pagination": page.pagination(),
            }
        )

    def _edit_value(data: dict, key: str):
        if key not in data:
            return UNSET
        if data[key] is None:
            return None
        return parse_iso_instant(str(data[key]))

    @app.route("/api/time-records/check-in", methods=["POST"], endpoint="time_records_check_in")
    @login_required
    def check_in():
        record = sessions.open_session(
            current_user_id(),
            user_agent=request.headers.get("User-Agent"),
            ip=client_ip(),
        )
        return jsonify({"success": True, "record": record.to_dict(tz)}), 201

    @app.route("/api/time-records/check-out", methods=["POST"], endpoint="time_records_check_out")
    @login_required
    def check_out():
        record = sessions.close_session(current_user_id())
        return jsonify({"success": True, "record": record.to_dict(tz)})

    @app.route("/api/time-records/open", methods=["GET"], endpoint="time_records_open")
    @login_required
    def open_session():
        record = sessions.get_open_session(current_user_id())
        if not record:
            return jsonify({"success": True, "record": None, "elapsedMinutes": 0})
        return jsonify({"success": True, "record": record.to_dict(tz), "elapsedMinutes": sessions.live_minutes(record)})

    @app.route("/api/time-records/mine", methods=["GET"], endpoint="time_records_mine")
    @login_required
    def my_records():
        args = request.args
        page = sessions.list_for_user(
            current_user_id(),
            page=args.get("page"),
            limit=args.get("limit"),
            login_from=parse_range_bound(args.get("from"), tz),
            login_to=parse_range_bound(args.get("to"), tz, end=True),
            open_only=parse_flag(args.get("openOnly")),
        )
        return _page_response(page)

    @app.route("/api/time-records/admin", methods=["GET"], endpoint="time_records_admin_list")
    @admin_required
    def admin_list():
        args = request.args
        page = sessions.admin_list(
            user_id=parse_optional_int(args.get("userId"), "userId"),
            page=args.get("page"),
            limit=args.get("limit"),
            login_from=parse_range_bound(args.get("from"), tz),
            login_to=parse_range_bound(args.get("to"), tz, end=True),
            open_only=parse_flag(args.get("openOnly")),
        )
        return _page_response(page)

    @app.route("/api/time-records/admin/present-today", methods=["GET"], endpoint="time_records_present_today")
    @admin_required
    def present_today():
        count, day = sessions.present_today_count()
        return jsonify({"success": True, "count": count, "day": day.isoformat(), "tz": str(tz)})

    @app.route("/api/time-records/admin/<int:record_id>", methods=["PUT"], endpoint="time_records_admin_edit")
    @admin_required
    def admin_edit(record_id: int):
        data = json_body()
        login_at = _edit_value(data, "loginAt")
        logout_at = _edit_value(data, "logoutAt")
        if login_at is UNSET and logout_at is UNSET:
            raise ValidationError("Provide loginAt and/or logoutAt")
        record = sessions.admin_edit_session(record_id, login_at=login_at, logout_at=logout_at)
        return jsonify({"success": True, "record": record.to_dict(tz)})

    @app.route("/api/time-records/admin/<int:record_id>", methods=["DELETE"], endpoint="time_records_admin_delete")
    @admin_required
    def admin_delete(record_id: int):
        sessions.admin_delete_session(record_id)
        return jsonify({"success": True, "message": "Time record deleted"})

    @app.route("/api/time-records/admin/<int:record_id>/overtime", methods=["GET"], endpoint="time_records_overtime")
    @admin_required
    def record_overtime(record_id: int):
        result = container.overtime_service.calculate_for_record(record_id)
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/time-records/admin/overtime-summary", methods=["GET"], endpoint="time_records_overtime_summary")
    @admin_required
    def overtime_summary():
        args = request.args
        user_id = parse_optional_int(args.get("userId"), "userId")
        if user_id is None:
            raise ValidationError("userId is required")
        summary = container.overtime_service.summarize(
            user_id,
            start_date=parse_iso_date(args.get("from", "")),
            end_date=parse_iso_date(args.get("to", "")),
        )
        return jsonify({"success": True, "summary": summary})
