"""Standardised API error responses.

Usage
-----
    from infosec_tools.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Tracker not found")
    return api_error(E.VALIDATION_REQUIRED, "name is required")
    return api_error(E.VALIDATION_INVALID, "Bad row", details={"data": "must be an object"})
"""

from __future__ import annotations

import logging

from flask import current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from infosec_tools.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from infosec_tools.models import db

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"

    # Generic HTTP error passthrough
    HTTP = "ERR_HTTP"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field-level validation messages, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def _internal_message(exc: Exception) -> str:
    if current_app.config.get("DEBUG"):
        return f"Internal server error: {exc}"
    return "Internal server error"


def register_error_handlers(app):
    """Map the exception hierarchy onto JSON responses for the whole app."""

    @app.errorhandler(ValidationError)
    def _handle_validation(exc):
        db.session.rollback()
        return api_error(E.VALIDATION_INVALID, exc.message, details=exc.details)

    @app.errorhandler(AuthenticationError)
    def _handle_authentication(exc):
        return api_error(E.UNAUTHORIZED, exc.message)

    @app.errorhandler(AuthorizationError)
    def _handle_authorization(exc):
        return api_error(E.FORBIDDEN, exc.message)

    @app.errorhandler(NotFoundError)
    def _handle_not_found(exc):
        logger.debug("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @app.errorhandler(ConflictError)
    def _handle_conflict(exc):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(exc), details={"field": exc.field})

    @app.errorhandler(IntegrityError)
    def _handle_integrity(exc):
        db.session.rollback()
        logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Record violates a database constraint", status=409)

    @app.errorhandler(SQLAlchemyError)
    def _handle_database(exc):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, _internal_message(exc))

    @app.errorhandler(HTTPException)
    def _handle_http(exc):
        if not request.path.startswith("/api/"):
            return exc
        return api_error(E.HTTP, exc.description or exc.name, status=exc.code)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error(E.INTERNAL, _internal_message(exc))
