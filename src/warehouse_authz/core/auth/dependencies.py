"""FastAPI dependencies for the identity boundary.

This module provides dependency injection functions for:
- Extracting and validating bearer tokens
- Getting the current authenticated caller
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from warehouse_authz.core.auth.backend import decode_token
from warehouse_authz.core.auth.schemas import AuthenticatedUser, TokenData
from warehouse_authz.core.errors import UnauthorizedError


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData:
    """Extract and validate token data from the Authorization header.

    Raises:
        UnauthorizedError: If token is missing, invalid or not an access token
    """
    if not credentials:
        raise UnauthorizedError(
            "Missing authentication token",
            error_code="missing_token",
        )

    token_data = decode_token(credentials.credentials)
    if not token_data:
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        )

    if token_data.type != "access":
        raise UnauthorizedError(
            "Invalid token type",
            error_code="invalid_token_type",
        )

    return token_data


async def get_current_user(
    token_data: Annotated[TokenData, Depends(get_token_data)],
) -> AuthenticatedUser:
    """Get the currently authenticated caller."""
    return AuthenticatedUser.from_token(token_data)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthenticatedUser | None:
    """Get the current caller if authenticated, None otherwise."""
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.type != "access":
        return None

    return AuthenticatedUser.from_token(token_data)


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(get_optional_user)]
