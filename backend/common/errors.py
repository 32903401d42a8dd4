"""
Error taxonomy shared by every service.

Services raise these exceptions; the gateway turns them into JSON
responses of the form {"error": "<message>"} with the matching status.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that are safe to show to API clients."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ApiError):
    """
    Malformed or missing input.

    `errors` carries one {"field", "message"} entry per violated field when
    the caller validated a whole record (event creation, signup).
    """

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    # Duplicates are reported as 400, like every other rejected request body
    status_code = 400


class ForbiddenError(ApiError):
    status_code = 403


class AuthError(ApiError):
    status_code = 401


class InternalError(ApiError):
    status_code = 500


class CascadeError(InternalError):
    """Event removal failed after its registrations were purged."""


def _render(err: ApiError) -> Tuple[Response, int]:
    return jsonify(err.to_dict()), err.status_code


def register_error_handlers(app: Flask) -> None:
    """
    Install the JSON error handlers on the application.

    Args:
        app (Flask): The application to configure.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError) -> Tuple[Response, int]:
        if err.status_code >= 500:
            logger.error(f"{type(err).__name__}: {err.message}")
        return _render(err)

    @app.errorhandler(psycopg2.Error)
    def handle_database_error(err: psycopg2.Error) -> Tuple[Response, int]:
        # Storage details stay in the log
        logger.error(f"Database error: {err}", exc_info=err)
        return _render(InternalError("Server error"))

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException) -> Tuple[Response, int]:
        # Unknown routes, wrong methods and other framework-level rejections
        return jsonify({"error": err.description}), err.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception) -> Tuple[Response, int]:
        logger.error(f"Unhandled {type(err).__name__}: {err}", exc_info=err)
        return _render(InternalError("Server error"))


def json_body() -> Dict[str, Any]:
    """
    The request's JSON object, or {} when no body was sent.

    Raises:
        ValidationError: The body is JSON but not an object.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
