"""Domain exceptions for the authorization service.

These exceptions are converted to RFC 7807 Problem Details responses by
the exception handlers. None of them may carry cache state or the
capability mode; callers only learn which codes or warehouse were refused.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

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


class UnauthorizedError(AppException):
    """Raised when no verified identity is attached to the request.

    Example:
        raise UnauthorizedError("Invalid access token")
    """

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when the caller lacks a capability or warehouse.

    Example:
        raise ForbiddenError(
            "Insufficient permissions",
            details={"required_permissions": ["feature:inbound:create"]}
        )
    """

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class BadRequestError(AppException):
    """Raised for general client errors."""

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class PermissionCheckError(AppException):
    """Raised when effective permissions could not be resolved.

    Distinct from ForbiddenError: the request is refused because the
    decision could not be made, not because it was negative.
    """

    message = "Permission check failed"
    error_code = "permission_check_failed"
    status_code = 500
