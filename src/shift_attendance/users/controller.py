from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.web import client_ip, current_user_id, json_body, login_required
from ..container import Container
from ..core.exceptions import ConflictError, NotFoundError

log = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value

        # Logging in starts attendance; an already-open session is resumed.
        resumed = False
        try:
            record = container.session_service.open_session(
                s_user.user_id,
                user_agent=request.headers.get("User-Agent"),
                ip=client_ip(),
            )
        except ConflictError:
            record = container.session_service.get_open_session(s_user.user_id)
            resumed = True

        return jsonify(
            {
                "success": True,
                "user": {
                    "id": s_user.user_id,
                    "name": s_user.full_name,
                    "email": s_user.email,
                    "role": s_user.role.value,
                    "department": s_user.department,
                },
                "timeRecord": record.to_dict(container.tz) if record else None,
                "resumed": resumed,
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @login_required
    def logout():
        user_id = current_user_id()
        try:
            record = container.session_service.close_session(user_id)
        except NotFoundError:
            record = None
        session.clear()
        return jsonify(
            {
                "success": True,
                "message": "Logged out",
                "timeRecord": record.to_dict(container.tz) if record else None,
            }
        )

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        user = container.user_service.require_user(current_user_id())
        return jsonify({"success": True, "user": user.to_public_dict()})
