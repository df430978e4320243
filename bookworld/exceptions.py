"""
Application Errors and the HTTP Error Boundary

Services and route handlers raise the exceptions defined here instead of
building HTTP responses themselves. A single set of exception handlers,
installed by register_exception_handlers(), maps every error to a status
code and the uniform JSON body:

    {"message": "<human readable text>"}

Error Kinds:
============
- ValidationError      400  malformed or missing input
- AuthenticationError  401  missing, invalid or expired bearer token
- AuthorizationError   403  valid identity, wrong role or not the owner
- NotFoundError        404  referenced entity does not exist
- ConflictError        400  duplicate review, duplicate account email
- UnexpectedError      500  storage or upload failure

Anything else that escapes a handler becomes a 500 with the message
"Something went wrong." and is logged with its traceback.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong."


class BookWorldError(Exception):
    """Base class for errors that map to a specific HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookWorldError):
    """Raised when input validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(BookWorldError):
    """Raised when authentication is required but not provided or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(BookWorldError):
    """Raised when the user lacks permission for an operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BookWorldError):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookWorldError):
    """Raised when a write would duplicate a unique record."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnexpectedError(BookWorldError):
    """Raised when a storage or upstream call fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def format_validation_errors(errors) -> str:
    """
    Collapse pydantic/FastAPI error entries into one readable line.

    The "body"/"query"/"form" location prefix is dropped so the message
    names only the offending field:

        Validation failed: rating: Input should be less than or equal to 5
    """
    parts = []
    for error in errors:
        location = [
            str(item) for item in error.get("loc", ())
            if item not in ("body", "query", "path", "form", "header")
        ]
        reason = error.get("msg", "invalid value")
        parts.append(f"{'.'.join(location)}: {reason}" if location else reason)
    if not parts:
        return "Validation failed"
    return "Validation failed: " + "; ".join(parts)


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the error boundary on the application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(BookWorldError)
    async def bookworld_error_handler(request: Request, exc: BookWorldError) -> JSONResponse:
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else GENERIC_ERROR_MESSAGE
        return _error_response(exc.status_code, message, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            format_validation_errors(exc.errors()),
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error for debugging while hiding details from users.
        """
        logger.error(f"Database error: {exc}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)
