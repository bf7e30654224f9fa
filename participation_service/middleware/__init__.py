"""Middleware module"""

from participation_service.middleware.error_handler import (
    register_exception_handlers,
    AppError,
    CapacityBelowUsage,
    CapacityExceeded,
    Conflict,
    ErrorCategory,
    NotAuthorized,
    NotFound,
    SessionNotJoinable,
    ValidationError as ValidationErrorException,
)

__all__ = [
    "register_exception_handlers",
    "AppError",
    "CapacityBelowUsage",
    "CapacityExceeded",
    "Conflict",
    "ErrorCategory",
    "NotAuthorized",
    "NotFound",
    "SessionNotJoinable",
    "ValidationErrorException",
]
