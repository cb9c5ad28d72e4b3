"""
Error taxonomy shared by services and blueprints.

Services raise ``ServiceError`` with a code from ``ErrorCode``; callers match on
the code, never on message text. Database failures are classified once, here,
by SQLSTATE (Postgres) with a message fallback for SQLite.
"""
from __future__ import annotations

import logging
from enum import Enum

from flask import jsonify
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION = "validation_error"
    UNAUTHORIZED = "unauthorized"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    ALREADY_CONVERTED = "already_converted"
    ESTIMATE_LOCKED = "estimate_locked"
    CONFLICT = "conflict"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_REFERENCE = "invalid_reference"
    SERVER_ERROR = "server_error"


HTTP_STATUS = {
    ErrorCode.VALIDATION: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.ALREADY_CONVERTED: 409,
    ErrorCode.ESTIMATE_LOCKED: 409,
    ErrorCode.CONFLICT: 409,
    ErrorCode.MISSING_REQUIRED_FIELD: 422,
    ErrorCode.INVALID_REFERENCE: 422,
    ErrorCode.SERVER_ERROR: 500,
}

USER_MESSAGES = {
    ErrorCode.VALIDATION: "Some fields are invalid. Please review and try again.",
    ErrorCode.UNAUTHORIZED: "Please log in to continue.",
    ErrorCode.PERMISSION_DENIED: "You do not have permission to perform this action. Please contact your administrator.",
    ErrorCode.NOT_FOUND: "The requested record was not found.",
    ErrorCode.INVALID_TRANSITION: "This action is not allowed in the estimate's current status.",
    ErrorCode.ALREADY_CONVERTED: "This estimate has already been converted.",
    ErrorCode.ESTIMATE_LOCKED: "Converted estimates cannot be edited.",
    ErrorCode.CONFLICT: "This record was changed by someone else. Reload and try again.",
    ErrorCode.MISSING_REQUIRED_FIELD: "Missing required field. Please ensure all required fields are filled.",
    ErrorCode.INVALID_REFERENCE: "Invalid reference. Please check that all linked records exist.",
    ErrorCode.SERVER_ERROR: "Something went wrong. Please try again.",
}

# Postgres SQLSTATE -> code
_SQLSTATE = {
    "23502": ErrorCode.MISSING_REQUIRED_FIELD,  # not_null_violation
    "23503": ErrorCode.INVALID_REFERENCE,       # foreign_key_violation
    "23505": ErrorCode.CONFLICT,                # unique_violation
    "42501": ErrorCode.PERMISSION_DENIED,       # insufficient_privilege
}


class ServiceError(RuntimeError):
    def __init__(self, code: ErrorCode, message: str | None = None, fields: dict | None = None):
        self.code = ErrorCode(code)
        self.message = message or USER_MESSAGES[self.code]
        self.fields = fields or {}
        super().__init__(self.message)

    @property
    def status(self) -> int:
        return HTTP_STATUS[self.code]

    def to_dict(self) -> dict:
        payload = {"error": self.code.value, "message": self.message}
        if self.fields:
            payload["fields"] = self.fields
        return payload


def _sqlstate(exc: DBAPIError):
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify_db_error(exc: Exception) -> ServiceError:
    """Map a SQLAlchemy exception onto the taxonomy."""
    if isinstance(exc, StaleDataError):
        return ServiceError(ErrorCode.CONFLICT)
    if isinstance(exc, DBAPIError):
        code = _sqlstate(exc)
        if code in _SQLSTATE:
            return ServiceError(_SQLSTATE[code])
        if isinstance(exc, IntegrityError):
            # SQLite carries no SQLSTATE; its messages are stable enough
            text = str(getattr(exc, "orig", exc)).lower()
            if "not null" in text:
                return ServiceError(ErrorCode.MISSING_REQUIRED_FIELD)
            if "foreign key" in text:
                return ServiceError(ErrorCode.INVALID_REFERENCE)
            if "unique" in text:
                return ServiceError(ErrorCode.CONFLICT)
    return ServiceError(ErrorCode.SERVER_ERROR)


def error_response(err: ServiceError):
    return jsonify(err.to_dict()), err.status


def register_error_handlers(app):
    from fieldservice.extensions import db

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        db.session.rollback()
        level = logging.ERROR if err.status >= 500 else logging.INFO
        app.logger.log(level, "service error %s: %s", err.code.value, err.message)
        return error_response(err)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        code = {
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.PERMISSION_DENIED,
            404: ErrorCode.NOT_FOUND,
        }.get(e.code)
        if code is None:
            return {"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}, e.code
        return error_response(ServiceError(code))

    @app.errorhandler(DBAPIError)
    @app.errorhandler(StaleDataError)
    def handle_db_error(e):
        db.session.rollback()
        err = classify_db_error(e)
        app.logger.warning("database error classified as %s: %s", err.code.value, e)
        return error_response(err)
