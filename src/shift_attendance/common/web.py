"""Shared Flask helpers for the JSON controllers."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import ValidationError
from .datetime_utils import local_day_bounds, parse_iso_date, parse_iso_instant


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Authentication required"}), 401
        if session.get("role") != Role.ADMIN.value:
            return jsonify({"success": False, "message": "Admin access required"}), 403
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr


def parse_flag(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def parse_optional_int(value, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")


def parse_range_bound(value: Optional[str], tz: tzinfo, *, end: bool = False) -> Optional[datetime]:
    """Query-string bound: a full ISO instant, or a YYYY-MM-DD local day.

    A bare date used as an upper bound covers the whole day.
    """

    if not value:
        return None
    if len(value.strip()) == 10:
        day_start, day_end = local_day_bounds(parse_iso_date(value), tz)
        return day_end - timedelta(seconds=1) if end else day_start
    return parse_iso_instant(value)
