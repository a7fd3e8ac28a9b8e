import logging
import traceback

from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException, NotFound
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "TOO_MANY_REQUESTS",
}


def error_response(error: str, message: str, status: int, errors=None, details: dict | None = None):
    payload = {"success": False, "error": error, "message": message}
    if errors:
        payload["errors"] = errors
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _is_production() -> bool:
    return current_app.config.get("APP_ENV") in ("prod", "production")


def register_error_handlers(app):
    # Marshmallow validation errors: 400 with field-level messages
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        if current_app.debug:
            logger.info("validation failed: %s", err.messages)
        messages = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        return error_response("VALIDATION_ERROR", "Validation failed", 400, errors=messages)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        current_app.extensions["storage"].rollback()
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        logger.warning("integrity error: %s", message)
        if "unique constraint" in lower_msg or "unique violation" in lower_msg or "duplicate" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409)
        if "foreign key" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint failed.", 400)
        return error_response("BAD_REQUEST", "Integrity error.", 400)

    # Werkzeug HTTPExceptions (abort(...)) map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 500
        if current_app.debug:
            logger.info("%s: %s", status, err.description)
        if isinstance(err, NotFound) and err.description == NotFound.description:
            message = "Resource not found"
        else:
            message = err.description
        response, status = error_response(ERROR_CODES.get(status, "ERROR"), message, status)
        for name, value in err.get_headers():
            if name.lower() != "content-type":
                response.headers[name] = value
        return response, status

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        if not _is_production():
            details = {
                "type": err.__class__.__name__,
                "message": str(err),
                "stack": traceback.format_exception(type(err), err, err.__traceback__),
            }
        return error_response(
            "INTERNAL_ERROR", "An error occurred while processing your request.", 500, details=details
        )
