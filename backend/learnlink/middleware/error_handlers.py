"""Centralized error handling.

Every failure leaves the API in the same envelope::

    {"error": {"category": ..., "code": ..., "detail": ..., "suggestions": [...], "metadata": {...}}}

Domain exceptions are mapped here and nowhere else; routers just let them
propagate.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg.errors import (
    CheckViolation as CheckViolationError,
    ForeignKeyViolation as ForeignKeyViolationError,
    NotNullViolation as NotNullViolationError,
)
from sqlalchemy.exc import DatabaseError, IntegrityError, OperationalError

from learnlink.auth.exceptions import AuthenticationError
from learnlink.exceptions import (
    InvalidRelationshipError,
    ResourceNotFoundError,
    UnauthorizedActionError,
    ValidationError,
)


logger = logging.getLogger(__name__)


# === Error Categories ===


class ErrorCategory:
    """Error category constants."""

    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    DATABASE = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Specific error codes for better client handling."""

    # Authentication / authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    ACCESS_DENIED = "ACCESS_DENIED"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_RELATIONSHIP = "INVALID_RELATIONSHIP"

    # Database errors
    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"

    # Internal errors
    INTERNAL = "INTERNAL_ERROR"


# === Error Response Formatting ===


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    content: dict[str, Any] = {
        "error": {
            "category": category,
            "code": code,
            "detail": detail,
        }
    }

    if suggestions:
        content["error"]["suggestions"] = suggestions

    if metadata:
        content["error"]["metadata"] = metadata

    return JSONResponse(status_code=status_code, content=content)


async def handle_not_found(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
    """Unknown plan, topic, resource, post or user id."""
    logger.info(f"Not found on {request.method} {request.url.path}: {exc.message}")
    return format_error_response(
        category=ErrorCategory.RESOURCE_NOT_FOUND,
        code=ErrorCode.NOT_FOUND,
        detail=exc.message,
        status_code=status.HTTP_404_NOT_FOUND,
        metadata={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
    )


async def handle_invalid_relationship(request: Request, exc: InvalidRelationshipError) -> JSONResponse:
    """Path names entities that exist but are not attached to each other."""
    logger.info(f"Invalid relationship on {request.method} {request.url.path}: {exc.message}")
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_RELATIONSHIP,
        detail=exc.message,
        status_code=status.HTTP_400_BAD_REQUEST,
        metadata={
            "child_type": exc.child_type,
            "child_id": exc.child_id,
            "parent_type": exc.parent_type,
            "parent_id": exc.parent_id,
        },
    )


async def handle_unauthorized_action(request: Request, exc: UnauthorizedActionError) -> JSONResponse:
    """Acting user does not own the resource."""
    logger.warning(
        f"Forbidden {exc.action} on {exc.resource_type} at {request.method} {request.url.path}",
        extra={"user_id": str(getattr(request.state, "user_id", None))},
    )
    return format_error_response(
        category=ErrorCategory.AUTHORIZATION,
        code=ErrorCode.ACCESS_DENIED,
        detail=exc.message,
        status_code=status.HTTP_403_FORBIDDEN,
    )


async def handle_authentication_errors(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Missing or malformed caller identity."""
    logger.info(f"Authentication failed on {request.method} {request.url.path}: {exc.detail}")
    return format_error_response(
        category=ErrorCategory.AUTHENTICATION,
        code=ErrorCode.AUTH_REQUIRED,
        detail=str(exc.detail),
        status_code=exc.status_code,
    )


async def handle_validation_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle validation errors from FastAPI request parsing and domain validators."""
    logger.info(f"Validation error on {request.method} {request.url.path}", extra={"error": str(exc)})

    if isinstance(exc, RequestValidationError):
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})

        return format_error_response(
            category=ErrorCategory.VALIDATION,
            code=ErrorCode.INVALID_INPUT,
            detail="Invalid input data",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            metadata={"errors": errors},
        )

    detail = exc.message if isinstance(exc, ValidationError) else str(exc)
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail=detail,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def handle_database_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle database-related errors."""
    logger.exception(
        f"Database error on {request.method} {request.url.path}: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    original = getattr(exc, "orig", None)

    if isinstance(exc, IntegrityError) and "unique" in str(exc).lower():
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_UNIQUE_VIOLATION,
            detail="This resource already exists",
            status_code=status.HTTP_409_CONFLICT,
            suggestions=["Try using a different identifier"],
        )

    if isinstance(original, ForeignKeyViolationError) or "foreign key" in str(exc).lower():
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_FOREIGN_KEY_VIOLATION,
            detail="Referenced resource does not exist",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(original, (NotNullViolationError, CheckViolationError)) or isinstance(exc, IntegrityError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONSTRAINT_VIOLATION,
            detail="Required data is missing or invalid",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, OperationalError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONNECTION_FAILED,
            detail="Database connection error",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            suggestions=["Please try again later"],
        )

    return format_error_response(
        category=ErrorCategory.DATABASE,
        code=ErrorCode.INTERNAL,
        detail="A database error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log with an error id, never leak internals."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)

    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.INTERNAL,
        detail="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        metadata={"error_id": str(error_id)},
        suggestions=["Please try again later", "If the problem persists, contact support with the error ID"],
    )


# === Utility Functions ===


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": str(getattr(request.state, "user_id", None)),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    logger.error("Request failed", extra=context, exc_info=exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Wire every mapped exception type onto the app."""
    app.add_exception_handler(ResourceNotFoundError, handle_not_found)
    app.add_exception_handler(InvalidRelationshipError, handle_invalid_relationship)
    app.add_exception_handler(UnauthorizedActionError, handle_unauthorized_action)
    app.add_exception_handler(AuthenticationError, handle_authentication_errors)
    app.add_exception_handler(ValidationError, handle_validation_errors)
    app.add_exception_handler(RequestValidationError, handle_validation_errors)
    app.add_exception_handler(IntegrityError, handle_database_errors)
    app.add_exception_handler(OperationalError, handle_database_errors)
    app.add_exception_handler(DatabaseError, handle_database_errors)
    app.add_exception_handler(Exception, handle_unexpected_errors)
