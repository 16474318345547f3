from __future__ import annotations

import logging
from functools import wraps
from typing import Any

from flask import current_app, jsonify, request, session

from ..core.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    ReconciliationError,
    ValidationError,
)
from ..store import Deadline
from ..users.model import Caller

logger = logging.getLogger(__name__)

STAFF_ROLES = {Role.ADMIN.value, Role.TEACHER.value}

ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ReconciliationError, 500),
]


def error_response(message: str, status: int):
    return jsonify({"message": message}), status


def status_for(err: DomainError) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(err, exc_type):
            return status
    return 400


def staff_required(view):
    """Allow only admins and teachers; the login layer fills the session."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Not authorized, please log in", 401)
        if session.get("role") not in STAFF_ROLES:
            return error_response("Access denied", 403)
        return view(*args, **kwargs)

    return wrapper


def json_errors(view):
    """Answer domain errors with ``{"message": ...}`` and their HTTP status."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            status = status_for(e)
            if status >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, e)
            return error_response(str(e), status)
        except Exception:
            logger.exception("%s %s: unexpected error", request.method, request.path)
            return error_response("Server error", 500)

    return wrapper


def current_caller() -> Caller:
    user_id = session.get("user_id")
    if not user_id:
        raise AuthenticationError("Not authorized, please log in")
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Access denied")
    return Caller(user_id=str(user_id), role=role)


def request_deadline() -> Deadline:
    seconds = current_app.config.get("REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS)
    return Deadline.after(float(seconds))


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def ref_id(value: Any) -> str:
    """Accept either a bare id or a populated ``{"_id": ...}`` reference."""

    if isinstance(value, dict):
        value = value.get("_id")
    if value is None:
        return ""
    return str(value).strip()
