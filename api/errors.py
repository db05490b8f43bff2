from __future__ import annotations

import enum
import logging
import traceback
from typing import Iterable

from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError

from models import storage
from .cookies import clear_token_cookies

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL_ERROR"

    @property
    def status(self) -> int:
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class ApiError(Exception):
    """
    Application error with a stable kind, a human-readable message and
    optional field-level details.

    clear_cookies names the token cookies the error response must expire,
    e.g. when a session has fully lapsed.
    """

    def __init__(self, kind: ErrorKind, message: str, details: dict | None = None,
                 clear_cookies: Iterable[str] = ()):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details
        self.clear_cookies = tuple(clear_cookies)

    @property
    def status(self) -> int:
        return self.kind.status

    @classmethod
    def unauthorized(cls, message: str, **kwargs) -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message, **kwargs)

    @classmethod
    def forbidden(cls, message: str, **kwargs) -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message, **kwargs)

    @classmethod
    def conflict(cls, message: str, **kwargs) -> "ApiError":
        return cls(ErrorKind.CONFLICT, message, **kwargs)

    @classmethod
    def validation(cls, message: str, **kwargs) -> "ApiError":
        return cls(ErrorKind.VALIDATION, message, **kwargs)


def _debug() -> bool:
    return bool(current_app and current_app.debug)


def error_response(error: str, message: str, status: int, details: dict | None = None,
                   exc: BaseException | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    # Stack traces only leave the process in non-production builds
    if exc is not None and _debug():
        payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return jsonify(payload), status


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        logger.info("%s: %s", err.kind.value, err.message)
        body, status = error_response(err.kind.value, err.message, err.status, err.details, exc=err)
        if err.clear_cookies:
            clear_token_cookies(body, err.clear_cookies)
        return body, status

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response(ErrorKind.NOT_FOUND.value, "Resource not found", 404)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        logger.info("Validation failed: %s", err.messages)
        details = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        return error_response(ErrorKind.VALIDATION.value, "Validation Error", 422, details=details)

    # Unique constraints that slipped past the pre-checks (concurrent registration)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        storage.rollback()
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        if _debug():
            logger.exception("Integrity error", exc_info=err)
        if "unique" in lower_msg:
            return error_response(ErrorKind.CONFLICT.value, "User Already Exists", 409)
        return error_response(ErrorKind.VALIDATION.value, "Integrity error.", 422, exc=err)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        name = (err.name or "Bad Request").upper().replace(" ", "_")
        return error_response(name, err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        details = None
        if _debug():
            logger.exception("Unhandled exception", exc_info=err)
            details = {"type": err.__class__.__name__, "message": str(err)}
        else:
            logger.error("Unhandled exception: %s", err.__class__.__name__)
        return error_response(ErrorKind.INTERNAL.value, "An unexpected error occurred", 500,
                              details=details, exc=err)
