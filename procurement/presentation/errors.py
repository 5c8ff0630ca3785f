"""
JSON error responses for the API

Domain errors carry their own HTTP status; everything else is a 500 with a
generic message (the traceback goes to the error log, not to the client).
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from procurement.buisness.workflow.errors import ProcurementDomainError
from procurement.logger import get_logger
from procurement.utils.logging_sanitizer import sanitize_exception_message

logger = get_logger("procurement.presentation.errors")


def error_response(error_name, message, status_code):
    return jsonify({'error': error_name, 'message': message}), status_code


def register_error_handlers(app):

    @app.errorhandler(ProcurementDomainError)
    def handle_domain_error(error):
        logger.info(f"{type(error).__name__} ({error.status_code}): {sanitize_exception_message(error)}")
        return error_response(type(error).__name__, error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return error_response(error.name.replace(' ', ''), error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled error: {sanitize_exception_message(error)}")
        return error_response('InternalServerError', 'An unexpected error occurred', 500)
