"""Domain exceptions for the authorization core.

These exceptions represent business-logic errors. When the core sits behind
FastAPI they are converted to RFC 7807 Problem Details responses by the
exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all authorization core errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a role, permission or principal is not found.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id="7")
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when there's a conflict with existing data."""

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class DuplicateSlugError(ConflictError):
    """Raised when a slug is already taken by another entity of the same kind.

    Example:
        raise DuplicateSlugError(details={"kind": "role", "slug": "editor"})
    """

    message = "Slug already in use"
    error_code = "duplicate_slug"


class ValidationError(AppException):
    """Raised when entity data fails validation.

    Example:
        raise ValidationError(
            "Invalid role data",
            errors=[{"field": "name", "message": "Name must not be empty"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class BadRequestError(AppException):
    """Raised for general client errors."""

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class InvalidReferenceError(BadRequestError):
    """Raised when a role or permission reference is malformed or unknown.

    Example:
        raise InvalidReferenceError(
            "Unknown permission: delete-posts",
            details={"kind": "permission", "reference": "delete-posts"},
        )
    """

    message = "Invalid role or permission reference"
    error_code = "invalid_reference"


class UnauthorizedError(AppException):
    """Raised when no authenticated principal is available."""

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when a principal lacks the required role or permission.

    Example:
        raise ForbiddenError(
            "Insufficient permissions",
            details={"required_permissions": ["edit-posts"]}
        )
    """

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class PersistenceError(AppException):
    """Raised when the persistence collaborator rejects a write.

    The mutation that triggered it has not been applied.
    """

    message = "Persistence backend rejected the change"
    error_code = "persistence_error"
    status_code = 503
