"""JWT handling for the identity boundary.

Credentials are verified by the login service; this module only issues
tokens for tooling and tests and decodes the tokens presented to the API.
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from warehouse_authz.config import settings
from warehouse_authz.core.auth.schemas import TokenData


TOKEN_JTI_LENGTH = 32


def create_access_token(
    user_id: int,
    role: str,
    username: str = "",
    warehouse_id: int | None = None,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        user_id: Numeric user ID
        role: Role name
        username: Login name
        warehouse_id: Optional session warehouse
        expires_delta: Optional custom expiration time
        additional_claims: Optional extra claims to include

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(TOKEN_JTI_LENGTH),
    }
    if warehouse_id is not None:
        to_encode["warehouse_id"] = warehouse_id

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> TokenData | None:
    """Decode and validate a JWT token.

    Args:
        token: The JWT token to decode

    Returns:
        TokenData if valid, None if invalid, expired or missing claims
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        user_id = payload.get("sub")
        role = payload.get("role")
        exp = payload.get("exp")

        if not user_id or not role or exp is None:
            return None

        warehouse_id = payload.get("warehouse_id")

        return TokenData(
            user_id=int(user_id),
            username=payload.get("username", ""),
            role=role,
            warehouse_id=int(warehouse_id) if warehouse_id else None,
            exp=datetime.fromtimestamp(exp, tz=UTC),
            type=payload.get("type", "access"),
        )

    except (JWTError, ValueError, TypeError):
        return None
