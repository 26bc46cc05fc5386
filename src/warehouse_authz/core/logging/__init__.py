"""Logging module with structured logging and request tracking."""

from warehouse_authz.core.logging.middleware import RequestLoggingMiddleware


__all__ = [
    "RequestLoggingMiddleware",
]
