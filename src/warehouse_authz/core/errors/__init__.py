"""Error handling module with RFC 7807 Problem Details."""

from warehouse_authz.core.errors.exceptions import (
    AppException,
    BadRequestError,
    ForbiddenError,
    PermissionCheckError,
    UnauthorizedError,
)
from warehouse_authz.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    "BadRequestError",
    # Handlers
    "FieldError",
    "ForbiddenError",
    "PermissionCheckError",
    "ProblemDetail",
    "UnauthorizedError",
    "register_exception_handlers",
]
