from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException


class PropDeskError(Exception):
    """Base exception for all PropDesk business errors."""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(PropDeskError):
    """Missing or invalid references, bad date ranges, overlapping leases."""

    status_code = 400


class LeaseStateError(ValidationError):
    """Raised when a lease status change is not in the transition table."""


class AuthorizationError(PropDeskError):
    status_code = 403


class NotFoundError(PropDeskError):
    status_code = 404


class ServerError(PropDeskError):
    """Unexpected failure. The message is safe to show to the caller."""

    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(PropDeskError)
    def handle_propdesk_error(e):
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"message": e.description}), e.code
        current_app.logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500
