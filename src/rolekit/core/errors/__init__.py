"""Error handling module with RFC 7807 Problem Details."""

from rolekit.core.errors.exceptions import (
    AppException,
    BadRequestError,
    ConflictError,
    DuplicateSlugError,
    ForbiddenError,
    InvalidReferenceError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    ValidationError,
)
from rolekit.core.errors.handlers import ProblemDetail, register_exception_handlers


__all__ = [
    "AppException",
    "BadRequestError",
    "ConflictError",
    "DuplicateSlugError",
    "ForbiddenError",
    "InvalidReferenceError",
    "NotFoundError",
    "PersistenceError",
    "ProblemDetail",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
