"""RFC 7807 Problem Details exception handlers.

Every refusal produced by the authorization layer leaves the service as a
Problem Details document. 401 and 403 bodies name the codes or warehouse
involved; 500 bodies never describe resolution internals.

See: https://tools.ietf.org/html/rfc7807
"""

from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from warehouse_authz.config import settings
from warehouse_authz.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()


class FieldError(BaseModel):
    """Represents a single field validation error."""

    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        errors: List of field-level errors (for validation errors)
        trace_id: Request trace ID for debugging
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None
    trace_id: str | None = None

    model_config = {"extra": "allow"}


def _get_trace_id(request: Request) -> str | None:
    return getattr(request.state, "trace_id", None)


def _get_error_type_uri(error_code: str) -> str:
    return f"{settings.api_docs_base_url}/errors/{error_code}"


def _problem(
    request: Request,
    status_code: int,
    error_code: str,
    detail: str,
    title: str | None = None,
    errors: list[FieldError] | None = None,
) -> dict[str, Any]:
    return ProblemDetail(
        type=_get_error_type_uri(error_code),
        title=title or error_code.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        errors=errors,
        trace_id=_get_trace_id(request),
    ).model_dump(exclude_none=True)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException subclasses to Problem Details responses."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app_exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        path=str(request.url.path),
        details=exc.details,
    )

    content = _problem(request, exc.status_code, exc.error_code, exc.message)

    # Extra details become top-level members, never overriding the standard ones
    for key, value in exc.details.items():
        content.setdefault(key, value)

    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI/Pydantic validation errors to Problem Details."""
    errors: list[FieldError] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        field_parts = [str(part) for part in loc if part != "body"]
        errors.append(
            FieldError(
                field=".".join(field_parts) if field_parts else "unknown",
                message=error.get("msg", "Invalid value"),
                type=error.get("type"),
            )
        )

    logger.warning(
        "validation_error",
        path=str(request.url.path),
        error_count=len(errors),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_problem(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Request validation failed",
            errors=errors,
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    The actual error details are logged but not exposed to clients.
    """
    logger.exception(
        "unhandled_exception",
        path=str(request.url.path),
        error_type=type(exc).__name__,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_problem(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred",
            title="Internal Server Error",
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(
        AppException, cast("ExceptionHandler", app_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", validation_exception_handler)
    )
    app.add_exception_handler(Exception, generic_exception_handler)
