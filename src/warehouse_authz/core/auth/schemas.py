"""Identity schemas for bearer token handling."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        user_id: Numeric user ID
        username: Login name
        role: Role name (e.g. "operator", "super_admin")
        warehouse_id: Warehouse baked into the session at login, if any
        exp: Token expiration time
        type: Token type
    """

    user_id: int
    username: str = ""
    role: str
    warehouse_id: int | None = None
    exp: datetime
    type: str = "access"


class AuthenticatedUser(BaseModel):
    """A caller whose identity was verified upstream.

    This is the only identity shape the authorization engine consumes.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: str
    username: str = ""
    warehouse_id: int | None = None

    @classmethod
    def from_token(cls, token_data: TokenData) -> "AuthenticatedUser":
        return cls(
            user_id=token_data.user_id,
            role=token_data.role,
            username=token_data.username,
            warehouse_id=token_data.warehouse_id,
        )
