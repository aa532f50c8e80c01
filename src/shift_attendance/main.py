from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .container import Container, build_container
from .core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_TIMEZONE
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from .database.bootstrap import apply_schema, ensure_demo_users, list_tables
from .scheduling.controller import register as register_scheduling
from .time_records.controller import register as register_time_records
from .users.controller import register as register_users

log = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (InvalidStateError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(e, cls)), 400)
        body = {"success": False, "message": str(e)}
        if isinstance(e, ScheduleConflictError):
            body["conflicts"] = [c.to_dict() for c in e.conflicts]
            body["conflictingDates"] = [d.isoformat() for d in e.conflicting_dates]
        return jsonify(body), status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        # Redirects and HTTP errors raised by Flask itself keep their status.
        if isinstance(e, HTTPException):
            if e.code is not None and e.code >= 400:
                return jsonify({"success": False, "message": e.description}), e.code
            return e

        log.exception("unhandled error")
        message = str(e) if app.config.get("DEBUG") else "Internal server error"
        return jsonify({"success": False, "message": message}), 500


def create_app(*, container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        log.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            log.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_users(db_config)

        container = build_container(
            db_config=db_config,
            timezone_name=getattr(settings, "TIMEZONE", DEFAULT_TIMEZONE),
            lock_timeout=int(getattr(settings, "SCHEDULE_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS)),
        )

    app.extensions["container"] = container
    _register_error_handlers(app)

    register_users(app, container)
    register_time_records(app, container)
    register_scheduling(app, container)

    return app
