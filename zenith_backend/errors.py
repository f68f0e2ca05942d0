# zenith_backend/errors.py
from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException

from zenith_backend.extensions import db


class StudioError(Exception):
    """Base error for all service-level failures. Rendered as a JSON envelope."""

    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        out = {"ok": False, "error": self.message, "kind": self.kind}
        if self.details:
            out.update(self.details)
        return out


class ValidationError(StudioError):
    status_code = 400


class AuthenticationError(StudioError):
    status_code = 401


class NotFoundError(StudioError):
    status_code = 404


class ConflictError(StudioError):
    status_code = 409


class ForbiddenError(StudioError):
    status_code = 403


class InsufficientStateError(StudioError):
    status_code = 409


class ExternalServiceError(StudioError):
    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(StudioError)
    def _studio_error(err: StudioError):
        db.session.rollback()
        if err.status_code >= 500:
            current_app.logger.error("[%s] %s", err.kind, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return jsonify({"ok": False, "error": err.description, "kind": err.name}), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"ok": False, "error": "Server error", "kind": "ServerError"}), 500
