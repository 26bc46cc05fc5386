"""Identity context and request tracing middleware."""

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from warehouse_authz.core.auth.backend import decode_token


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class IdentityContextMiddleware(BaseHTTPMiddleware):
    """Binds the caller's user ID and role to request.state and the log context.

    Does not reject anything; unauthenticated requests are refused by the
    CurrentUser dependency of the routes that need one.
    """

    def __init__(
        self,
        app: "ASGIApp",
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token_data = decode_token(auth_header.split(" ", 1)[1])

            if token_data:
                request.state.user_id = token_data.user_id
                request.state.role = token_data.role
                structlog.contextvars.bind_contextvars(
                    user_id=token_data.user_id,
                    role=token_data.role,
                )

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Adds a unique request ID to request.state, the log context and the response."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id  # Alias for error handler

        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id", "role")

        response.headers["X-Request-ID"] = request_id
        return response
