"""
APPLICATION ERRORS
==================

One typed error carries a message and an HTTP status code.
Services raise these; the handler registered in create_app()
turns them into the JSON error envelope.
"""

import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.extensions import db

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for every expected failure"""
    status_code = 400

    def __init__(self, message, status_code=None, data=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data


class ValidationError(AppError):
    """Missing or invalid input"""
    status_code = 400


class ConflictError(AppError):
    """Status transition attempted from the wrong state"""
    status_code = 400


class AuthorizationError(AppError):
    """Role or ownership check failed"""
    status_code = 403


class NotFoundError(AppError):
    """Entity does not exist"""
    status_code = 404


def error_response(message, status_code, data=None):
    return jsonify({
        'success': False,
        'message': message,
        'data': data,
    }), status_code


def register_error_handlers(app):

    @app.errorhandler(AppError)
    def handle_app_error(error):
        return error_response(error.message, error.status_code, error.data)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        logger.warning("Integrity error: %s", error.orig)
        return error_response('Duplicate or invalid value. Please use another value.', 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return error_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception("Unhandled error")
        return error_response('Internal Server Error', 500)
