"""
Error handling utilities
Exception taxonomy, database error messages and the JSON error handlers
registered on the application
"""

import logging
from functools import wraps
from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status"""
    status_code = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(AppError):
    status_code = 401
    default_message = 'Unauthorized'


class AuthorizationError(AppError):
    status_code = 403
    default_message = "You don't have permission to perform this action."


class NotFoundError(AppError):
    status_code = 404
    default_message = 'Not found'


class UpstreamError(AppError):
    """External API failure. Absorbed into a sentinel or a per-item error entry."""
    status_code = 502
    default_message = 'Upstream service error'


class PersistenceError(AppError):
    status_code = 500
    default_message = 'Database error occurred. Please try again.'


class ErrorHandler:
    """Centralized error message mapping"""

    @staticmethod
    def handle_database_error(error, context="Database operation"):
        """Log a database error and return the message safe to show a client"""
        if isinstance(error, IntegrityError):
            logger.warning(f"{context} - Integrity constraint violation: {str(error)}")
            return "Data integrity error. Please check your input and try again."
        elif isinstance(error, OperationalError):
            logger.error(f"{context} - Database connection error: {str(error)}", exc_info=True)
            return "Database connection error. Please try again in a moment."
        elif isinstance(error, SQLAlchemyError):
            logger.error(f"{context} - Database error: {str(error)}", exc_info=True)
            return "Database error occurred. Please try again."
        logger.error(f"{context} - Unknown database error: {str(error)}", exc_info=True)
        return "An unexpected database error occurred."

    @staticmethod
    def handle_network_error(error, context="Network operation"):
        """Log a network error and return a short description of it"""
        error_str = str(error).lower()
        if "timeout" in error_str or "timed out" in error_str:
            logger.warning(f"{context} - Timeout error: {str(error)}")
            return "Request timed out"
        elif "connection" in error_str:
            logger.warning(f"{context} - Connection error: {str(error)}")
            return "Connection error"
        logger.warning(f"{context} - Network error: {str(error)}")
        return "Network error"


def transactional(context="Database operation"):
    """Commit the service's session when the wrapped method returns, roll back on failure.

    The wrapped callable must be a method of an object exposing ``self.session``.
    Application errors raised inside roll the transaction back and propagate
    unchanged; SQLAlchemy failures become PersistenceError.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(self, *args, **kwargs):
            try:
                result = f(self, *args, **kwargs)
                self.session.commit()
                return result
            except AppError:
                self.session.rollback()
                raise
            except SQLAlchemyError as e:
                self.session.rollback()
                message = ErrorHandler.handle_database_error(e, context)
                raise PersistenceError(message) from e
        return decorated_function
    return decorator


def error_response(message, status_code):
    return jsonify({'error': message}), status_code


def register_error_handlers(app):
    from models import db

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__} on {request.method} {request.path}: {error.message}")
        else:
            logger.info(f"{type(error).__name__} on {request.method} {request.path}: {error.message}")
        return error_response(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return error_response(error.description or error.name, error.code)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_exception(error):
        try:
            db.session.rollback()
        except SQLAlchemyError as db_error:
            logger.error(f"Database rollback failed: {str(db_error)}")
        message = ErrorHandler.handle_database_error(error, f"Route {request.endpoint}")
        return error_response(message, 500)

    @app.errorhandler(Exception)
    def handle_exception(error):
        logger.error(f"Unhandled exception: {str(error)}", exc_info=True)
        try:
            db.session.rollback()
        except SQLAlchemyError as db_error:
            logger.error(f"Database rollback failed: {str(db_error)}")
        return error_response('An unexpected error occurred', 500)
