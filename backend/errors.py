"""
JSON error envelopes for the HTTP layer.

    {"success": false, "error": {"text": ["..."]}, "code": "VALIDATION_ERROR"}

Field-level errors keep the same field-keyed shape the service returns; HTTP
level failures (unknown route, missing passcode) use the ``form`` key.
"""
from enum import Enum
from typing import Optional

from flask import jsonify


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    500: ErrorCode.INTERNAL_ERROR,
}


def error_response(errors: dict, status_code: int, code: Optional[ErrorCode] = None):
    """Build ``(response, status)`` for a field-keyed error map."""
    code = code or STATUS_CODES.get(status_code, ErrorCode.INTERNAL_ERROR)
    return jsonify({
        "success": False,
        "error": errors,
        "code": code.value,
    }), status_code


def validation_error(field: str, message: str):
    return error_response({field: [message]}, 400)


def unauthorized_error(message: str = "Admin passcode required."):
    return error_response({"form": [message]}, 401)


def not_found_error(message: str = "Not found."):
    return error_response({"form": [message]}, 404)


def internal_error(message: str = "Internal server error."):
    return error_response({"form": [message]}, 500)
