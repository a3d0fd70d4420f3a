"""RFC 7807 Problem Details rendering for FastAPI applications.

Route guards raise ``AppException`` subclasses; the handler registered here
turns them into ``application/problem+json`` responses:

    401  unauthorized / auth_required       (with WWW-Authenticate)
    403  permission_denied
    400  invalid_reference
    404  not_found, 409 duplicate_slug, 422 validation_error
    503  persistence_error

See: https://tools.ietf.org/html/rfc7807
"""

from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rolekit.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()

ERROR_TYPE_PREFIX = "urn:rolekit:error:"
PROBLEM_JSON = "application/problem+json"


class ProblemDetail(BaseModel):
    """Problem Details body.

    Exception ``details`` (required roles, the offending reference, field
    errors) are added as extension members alongside the standard fields.
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    trace_id: str | None = None

    model_config = {"extra": "allow"}

    @classmethod
    def from_exception(cls, exc: AppException, request: Request) -> "ProblemDetail":
        # Standard members win over extension members with the same name
        extensions = {k: v for k, v in exc.details.items() if k not in cls.model_fields}
        return cls(
            type=f"{ERROR_TYPE_PREFIX}{exc.error_code}",
            title=exc.error_code.replace("_", " ").title(),
            status=exc.status_code,
            detail=exc.message,
            instance=request.url.path,
            trace_id=getattr(request.state, "trace_id", None),
            **extensions,
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException as Problem Details."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_rejected",
        error_code=exc.error_code,
        status_code=exc.status_code,
        method=request.method,
        path=request.url.path,
    )

    headers: dict[str, Any] = {}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content=ProblemDetail.from_exception(exc, request).model_dump(exclude_none=True),
        media_type=PROBLEM_JSON,
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the Problem Details handler on ``app``.

    Usage:
        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(AppException, cast("ExceptionHandler", app_exception_handler))
