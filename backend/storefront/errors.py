# Overview: Maps service-layer exceptions to JSON error responses.

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .services.auth_service import AuthenticationError
from .validation import ConflictError, NotFoundError, StorageError, ValidationError


def register_error_handlers(app):
    """
    Translate the error taxonomy into HTTP responses.

    ValidationError 400, AuthenticationError 401, NotFoundError 404,
    ConflictError 409, StorageError 503. Anything else is logged and
    answered with a generic 500.
    """

    @app.errorhandler(ValidationError)
    def handle_validation(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(AuthenticationError)
    def handle_authentication(exc):
        return jsonify({"error": str(exc)}), 401

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return jsonify({"error": str(exc)}), 409

    @app.errorhandler(StorageError)
    def handle_storage(exc):
        current_app.logger.exception("Storage operation failed")
        return jsonify({"error": "Storage temporarily unavailable, please retry"}), 503

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
