"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from warehouse_authz.core.auth import CurrentUser
from warehouse_authz.core.auth.schemas import AuthenticatedUser
from warehouse_authz.core.errors import ForbiddenError, PermissionCheckError
from warehouse_authz.core.permissions.engine import AuthorizationEngine


def get_authorization_engine(request: Request) -> AuthorizationEngine:
    """Get the engine built by the application factory."""
    engine = getattr(request.app.state, "authorization_engine", None)
    if engine is None:
        raise PermissionCheckError()
    return engine


AuthzEngine = Annotated[AuthorizationEngine, Depends(get_authorization_engine)]


async def get_current_super_admin(
    user: CurrentUser,
    engine: AuthzEngine,
) -> AuthenticatedUser:
    """Get the current caller, ensuring they hold the super admin role.

    Raises:
        ForbiddenError: If the caller is not a super admin
    """
    if not engine.is_super_admin(user):
        raise ForbiddenError(
            "Super admin privileges required",
            error_code="not_super_admin",
        )
    return user


CurrentSuperAdmin = Annotated[AuthenticatedUser, Depends(get_current_super_admin)]
