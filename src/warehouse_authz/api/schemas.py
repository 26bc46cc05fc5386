"""Response schemas for the access API."""

from pydantic import BaseModel

from warehouse_authz.core.permissions.schemas import (
    BypassReason,
    PermissionSource,
    WarehouseAccess,
)


class PermissionEntry(BaseModel):
    """A resolved permission with its catalog metadata."""

    name: str
    category: str
    page: str | None = None
    can_access: bool
    is_visible: bool
    source: PermissionSource | BypassReason


class MyPermissionsResponse(BaseModel):
    """Everything the UI needs to decide what to show the caller."""

    role: str
    is_admin: bool
    permissions: dict[str, PermissionEntry]


class PermissionCheckResponse(BaseModel):
    code: str
    can_access: bool
    is_visible: bool


class WarehouseScopeResponse(BaseModel):
    """The caller's warehouse scope. ``warehouses`` is empty when unrestricted."""

    unrestricted: bool
    warehouses: list[WarehouseAccess]
    default_warehouse_id: int | None = None


class CacheClearedResponse(BaseModel):
    scope: str
    user_id: int | None = None


class CapabilityResponse(BaseModel):
    permissions: dict[str, str | None]
    warehouses: dict[str, str | None]
