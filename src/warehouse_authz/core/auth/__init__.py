"""Identity boundary: bearer token decoding and current-user dependencies."""

from warehouse_authz.core.auth.backend import create_access_token, decode_token
from warehouse_authz.core.auth.dependencies import (
    CurrentUser,
    OptionalUser,
    get_current_user,
    get_optional_user,
    get_token_data,
)
from warehouse_authz.core.auth.middleware import (
    IdentityContextMiddleware,
    RequestIdMiddleware,
)
from warehouse_authz.core.auth.schemas import AuthenticatedUser, TokenData


__all__ = [
    # Schemas
    "AuthenticatedUser",
    # Dependencies
    "CurrentUser",
    # Middleware
    "IdentityContextMiddleware",
    "OptionalUser",
    "RequestIdMiddleware",
    "TokenData",
    # Token utilities
    "create_access_token",
    "decode_token",
    "get_current_user",
    "get_optional_user",
    "get_token_data",
]
