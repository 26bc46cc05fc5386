"""Permission resolution and warehouse scoping.

Provides:
- The AuthorizationEngine and its capability detector
- Tagged result types (Resolution, WarehouseScope)
- Route guards (require_permission, require_warehouse_access, ...)
- The static permission catalog
"""

from warehouse_authz.core.permissions.capability import (
    CapabilityDetector,
    CapabilityMode,
    CapabilityState,
)
from warehouse_authz.core.permissions.catalog import (
    PERMISSION_CATALOG,
    PermissionDefinition,
    action_code,
    feature_code,
    get_definition,
    page_code,
)
from warehouse_authz.core.permissions.decorators import (
    inject_warehouse_filter,
    require_action_access,
    require_all_permissions,
    require_feature_access,
    require_page_access,
    require_permission,
    require_warehouse_access,
)
from warehouse_authz.core.permissions.engine import AuthorizationEngine
from warehouse_authz.core.permissions.schemas import (
    AllGranted,
    BypassReason,
    EffectivePermission,
    Explicit,
    PermissionGrant,
    Resolution,
    Restricted,
    Unrestricted,
    WarehouseAccess,
    WarehouseScope,
)
from warehouse_authz.core.permissions.stores import PermissionStore, SQLPermissionStore
from warehouse_authz.core.permissions.warehouse import WarehouseFilter


__all__ = [
    "PERMISSION_CATALOG",
    "AllGranted",
    "AuthorizationEngine",
    "BypassReason",
    "CapabilityDetector",
    "CapabilityMode",
    "CapabilityState",
    "EffectivePermission",
    "Explicit",
    "PermissionDefinition",
    "PermissionGrant",
    "PermissionStore",
    "Resolution",
    "Restricted",
    "SQLPermissionStore",
    "Unrestricted",
    "WarehouseAccess",
    "WarehouseFilter",
    "WarehouseScope",
    "action_code",
    "feature_code",
    "get_definition",
    "inject_warehouse_filter",
    "page_code",
    "require_action_access",
    "require_all_permissions",
    "require_feature_access",
    "require_page_access",
    "require_permission",
    "require_warehouse_access",
]
