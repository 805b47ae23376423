"""Standardised API responses.

Every JSON endpoint answers with one of two envelopes:

    {"success": true,  "data": ...}
    {"success": false, "error": "...", "code": "ERR_...", "details": {...}}

Usage
-----
    from fase.utils.errors import api_success, api_error, E

    return api_success(big_rock.to_dict(), status=201)
    return api_error(E.VALIDATION_INVALID, "limit must be between 1 and 100")

Domain exceptions raised by services are converted by the handlers that
``register_error_handlers`` installs on the app.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from fase.core.exceptions import (
    AuthenticationRequired,
    AuthorizationDenied,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # HTTP-level
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA: 415,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

_HTTP_CODES: dict[int, str] = {
    400: E.VALIDATION_INVALID,
    401: E.UNAUTHENTICATED,
    403: E.FORBIDDEN,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA,
    429: E.RATE_LIMITED,
}


def api_success(data=None, *, status: int = 200):
    """Return ``({"success": true, "data": data}, status)``."""
    return jsonify({"success": True, "data": data}), status


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``({"success": false, "error", "code", "details"?}, status)``.

    The status defaults to the one registered for *code* (400 if unknown).
    ``details`` is omitted from the body when empty.
    """
    body: dict = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _DEFAULT_STATUS.get(code, 400)


# ── App-wide exception mapping ────────────────────────────────────────


def register_error_handlers(app):
    """Map domain exceptions and HTTP errors to the error envelope."""

    @app.errorhandler(AuthenticationRequired)
    def _handle_unauthenticated(error: AuthenticationRequired):
        return api_error(E.UNAUTHENTICATED, str(error))

    @app.errorhandler(AuthorizationDenied)
    def _handle_forbidden(error: AuthorizationDenied):
        logger.info(
            "Access denied user=%s endpoint=%s: %s",
            error.user_id, request.endpoint, error,
        )
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, f"{error.resource} no encontrado")

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        code = _HTTP_CODES.get(error.code, E.INTERNAL)
        return api_error(code, error.description or error.name, status=error.code)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Error interno del servidor")
