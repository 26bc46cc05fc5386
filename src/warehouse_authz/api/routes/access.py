"""Read-only access endpoints and the administrative cache bust.

Administrative flows that write role grants, user overrides or warehouse
assignments call DELETE /access/cache?user_id=... after every write.
"""

from fastapi import APIRouter, Query, status

from warehouse_authz.api.dependencies import AuthzEngine, CurrentSuperAdmin
from warehouse_authz.api.schemas import (
    CacheClearedResponse,
    CapabilityResponse,
    MyPermissionsResponse,
    PermissionCheckResponse,
    PermissionEntry,
    WarehouseScopeResponse,
)
from warehouse_authz.core.auth import CurrentUser
from warehouse_authz.core.permissions.catalog import PERMISSION_CATALOG, get_definition
from warehouse_authz.core.permissions.schemas import AllGranted, Restricted


router = APIRouter(prefix="/access", tags=["access"])


@router.get("/me", response_model=MyPermissionsResponse)
async def get_my_permissions(
    current_user: CurrentUser,
    engine: AuthzEngine,
) -> MyPermissionsResponse:
    """Effective permissions of the caller, with catalog metadata."""
    resolution = await engine.resolve_permissions(current_user)
    permissions: dict[str, PermissionEntry] = {}

    if isinstance(resolution, AllGranted):
        for definition in PERMISSION_CATALOG:
            permissions[definition.code] = PermissionEntry(
                name=definition.display_name,
                category=definition.category,
                page=definition.page,
                can_access=True,
                is_visible=True,
                source=resolution.reason,
            )
    else:
        for perm in resolution.effective_permissions():
            definition = get_definition(perm.code)
            permissions[perm.code] = PermissionEntry(
                name=definition.display_name if definition else perm.code,
                category=definition.category if definition else perm.code.split(":")[0],
                page=definition.page if definition else None,
                can_access=perm.can_access,
                is_visible=perm.is_visible,
                source=perm.source,
            )

    return MyPermissionsResponse(
        role=current_user.role,
        is_admin=isinstance(resolution, AllGranted)
        and resolution.reason != "legacy_user",
        permissions=permissions,
    )


@router.get("/check/{code}", response_model=PermissionCheckResponse)
async def check_permission(
    code: str,
    current_user: CurrentUser,
    engine: AuthzEngine,
) -> PermissionCheckResponse:
    """Whether the caller may use, and should see, one permission."""
    resolution = await engine.resolve_permissions(current_user)
    return PermissionCheckResponse(
        code=code,
        can_access=resolution.allows(code),
        is_visible=resolution.is_visible(code),
    )


@router.get("/warehouses", response_model=WarehouseScopeResponse)
async def get_my_warehouses(
    current_user: CurrentUser,
    engine: AuthzEngine,
) -> WarehouseScopeResponse:
    """The caller's warehouse scope."""
    scope = await engine.get_accessible_warehouses(current_user)
    if isinstance(scope, Restricted):
        return WarehouseScopeResponse(
            unrestricted=False,
            warehouses=list(scope.warehouses),
            default_warehouse_id=scope.default_warehouse_id,
        )
    return WarehouseScopeResponse(unrestricted=True, warehouses=[])


@router.get("/capability", response_model=CapabilityResponse)
async def get_capability(
    _admin: CurrentSuperAdmin,
    engine: AuthzEngine,
) -> CapabilityResponse:
    """Schema probe states. Super admins only."""
    return CapabilityResponse(**engine.capability_snapshot())


@router.delete(
    "/cache",
    response_model=CacheClearedResponse,
    status_code=status.HTTP_200_OK,
)
async def clear_cache(
    _admin: CurrentSuperAdmin,
    engine: AuthzEngine,
    user_id: int | None = Query(default=None, gt=0),
) -> CacheClearedResponse:
    """Drop one user's cached decisions, or everything plus the schema probes."""
    await engine.clear_permission_cache(user_id)
    if user_id is None:
        return CacheClearedResponse(scope="all")
    return CacheClearedResponse(scope="user", user_id=user_id)
