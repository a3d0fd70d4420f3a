"""Core services and cross-cutting concerns."""

from rolekit.core.errors import (
    AppException,
    DuplicateSlugError,
    ForbiddenError,
    InvalidReferenceError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    register_exception_handlers,
)


__all__ = [
    "AppException",
    "DuplicateSlugError",
    "ForbiddenError",
    "InvalidReferenceError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
