"""
Error handling for the participation service.

Provides:
- A structured AppError hierarchy raised by the service layer
- FastAPI exception handlers rendering a uniform error body
- Database error mapping
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorCategory:
    """Error categories for structured error handling"""
    VALIDATION = "validation_error"
    DATABASE = "database_error"
    NOT_FOUND = "not_found_error"
    AUTHORIZATION = "authorization_error"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    SESSION_NOT_JOINABLE = "session_not_joinable"
    CAPACITY_BELOW_USAGE = "capacity_below_usage"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


class AppError(Exception):
    """Base application error with structured information"""

    def __init__(
        self,
        message: str,
        category: str = ErrorCategory.INTERNAL,
        status_code: int = 500,
        details: Optional[dict] = None,
        retry_after: Optional[int] = None
    ):
        self.message = message
        self.category = category
        self.status_code = status_code
        self.details = details or {}
        self.retry_after = retry_after
        super().__init__(self.message)


class NotFound(AppError):
    """Unknown session (caller error)."""
    def __init__(self, message: str = "Session not found", details: Optional[dict] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            status_code=404,
            details=details,
        )


class CapacityExceeded(AppError):
    """The session has no free slot. Recoverable: retry later or waitlist."""
    def __init__(self, session_id: str, capacity: int, used: int):
        super().__init__(
            message="Session is full",
            category=ErrorCategory.CAPACITY_EXCEEDED,
            status_code=409,
            details={"session_id": session_id, "capacity": capacity, "used": used},
        )


class SessionNotJoinable(AppError):
    """The session is cancelled, finished or past its join cutoff."""
    def __init__(self, session_id: str, reason: str):
        super().__init__(
            message=f"Session is not open for joining: {reason}",
            category=ErrorCategory.SESSION_NOT_JOINABLE,
            status_code=409,
            details={"session_id": session_id, "reason": reason},
        )


class CapacityBelowUsage(AppError):
    """A capacity edit would drop capacity below the slots already taken."""
    def __init__(self, session_id: str, requested: int, used: int):
        super().__init__(
            message=f"Capacity {requested} is below current usage {used}",
            category=ErrorCategory.CAPACITY_BELOW_USAGE,
            status_code=409,
            details={"session_id": session_id, "requested": requested, "used": used},
        )


class Conflict(AppError):
    """Transaction contention. Safe to retry immediately once."""
    def __init__(self, message: str = "Concurrent update conflict, please retry", details: Optional[dict] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFLICT,
            status_code=409,
            details=details,
            retry_after=1,
        )


class NotAuthorized(AppError):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            status_code=403,
        )


class ValidationError(AppError):
    """Validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            status_code=400,
            details=details
        )


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def handle_app_error(request: Request, error: AppError) -> JSONResponse:
    """Handle structured application errors"""

    log = logger.error if error.status_code >= 500 else logger.info
    log(
        f"Application error: {error.category}",
        extra={
            "category": error.category,
            "error_message": error.message,
            "status_code": error.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": error.details
        }
    )

    response_data = {
        "error": {
            "category": error.category,
            "message": error.message,
            "timestamp": _utcnow_iso(),
            "path": request.url.path,
            **error.details
        }
    }

    headers = {}
    if error.retry_after:
        headers["Retry-After"] = str(error.retry_after)

    return JSONResponse(
        status_code=error.status_code,
        content=response_data,
        headers=headers
    )


def handle_validation_error(request: Request, error: RequestValidationError) -> JSONResponse:
    """Handle FastAPI validation errors"""

    errors = []
    for err in error.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"]
        })

    logger.warning(
        f"Validation error on {request.url.path}",
        extra={"errors": errors, "method": request.method}
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "category": ErrorCategory.VALIDATION,
                "message": "Request validation failed",
                "timestamp": _utcnow_iso(),
                "path": request.url.path,
                "validation_errors": errors
            }
        }
    )


def handle_database_error(request: Request, error: SQLAlchemyError) -> JSONResponse:
    """Handle database errors that escaped the service layer"""

    is_connection_error = isinstance(error, OperationalError)
    is_integrity_error = isinstance(error, IntegrityError)

    if is_connection_error:
        message = "Database connection failed. Please try again."
        retry_after = 30
    elif is_integrity_error:
        message = "Database constraint violation. Check your input data."
        retry_after = None
    else:
        message = "Database operation failed. Please try again."
        retry_after = 10

    logger.error(
        f"Database error: {type(error).__name__}",
        extra={
            "error": str(error),
            "path": request.url.path,
            "method": request.method,
            "is_connection_error": is_connection_error,
            "is_integrity_error": is_integrity_error
        },
        exc_info=True
    )

    headers = {}
    if retry_after:
        headers["Retry-After"] = str(retry_after)

    return JSONResponse(
        status_code=503 if is_connection_error else 500,
        content={
            "error": {
                "category": ErrorCategory.DATABASE,
                "message": message,
                "timestamp": _utcnow_iso(),
                "path": request.url.path,
                "type": type(error).__name__
            }
        },
        headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
