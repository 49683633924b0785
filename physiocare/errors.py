from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db


class ClinicError(Exception):
    """Base error rendered as ``{"success": false, "message": ...}``."""

    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(ClinicError):
    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(ClinicError):
    status_code = 401
    default_message = "Authentication token required."


class AuthorizationError(ClinicError):
    status_code = 403
    default_message = "You are not allowed to perform this action."


class NotFoundError(ClinicError):
    status_code = 404
    default_message = "Resource not found."


class ConflictError(ClinicError):
    status_code = 409
    default_message = "Resource is still referenced by other records."


class UpstreamError(ClinicError):
    status_code = 500
    default_message = "Database request failed."


def error_response(message, status_code):
    return jsonify({"success": False, "message": message}), status_code


def register_error_handlers(app):
    @app.errorhandler(ClinicError)
    def handle_clinic_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{type(error).__name__}: {error.message}")
            db.session.rollback()
        return error_response(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return error_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        current_app.logger.exception(f"Unhandled error: {error}")
        db.session.rollback()
        return error_response(f"Server error: {error}", 500)
