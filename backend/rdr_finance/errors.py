# Overview: Error taxonomy shared by services and routes, rendered as JSON by the app.

"""
Every domain failure carries a machine-readable ``kind`` and an HTTP status.

Services raise these; routes never translate them by hand. The handlers
registered in ``register_error_handlers`` render them as
``{"error": kind, "message": ...}``.

- ValidationError      400  bad or missing input, never partially applied
- AuthenticationError  401  missing / expired / revoked bearer token
- AuthorizationError   403  wrong role or not the owner
- NotFoundError        404  target id does not exist
- ConflictError        409  stale expected state, wrong lifecycle state, duplicates
- UpstreamError        503  database or file store unreachable (retryable)
"""

from __future__ import annotations

from flask import Flask, jsonify, current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException


class FinanceError(Exception):
    kind = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.message}
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(FinanceError):
    """400-level input problem."""
    kind = "validation_error"
    status_code = 400


class AuthenticationError(FinanceError):
    kind = "unauthorized"
    status_code = 401


class AuthorizationError(FinanceError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(FinanceError):
    kind = "not_found"
    status_code = 404


class ConflictError(FinanceError):
    """409-level business rule conflict (stale state, duplicate username, ...)."""
    kind = "conflict"
    status_code = 409


class UpstreamError(FinanceError):
    kind = "upstream_error"
    status_code = 503
    retryable = True


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(FinanceError)
    def _finance_error(exc: FinanceError):
        if exc.status_code >= 500:
            current_app.logger.warning("Upstream failure: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(StaleDataError)
    def _stale(exc):
        from .extensions import db
        db.session.rollback()
        err = ConflictError("Record was modified by another request; reload and retry")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(OperationalError)
    def _db_unavailable(exc):
        from .extensions import db
        db.session.rollback()
        current_app.logger.exception("Database operation failed")
        err = UpstreamError("Database is unavailable; please retry")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http(exc: HTTPException):
        return jsonify({"error": exc.name.lower().replace(" ", "_"), "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def _unhandled(exc):
        from .extensions import db
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
