"""Effective permission resolution and warehouse scoping.

This module provides the AuthorizationEngine, which combines role
defaults, per-user overrides and per-user warehouse assignments into a
single decision per request. One engine owns its capability detector
and both caches, so separate engines never share state.
"""

import structlog
from pydantic import TypeAdapter

from warehouse_authz.config import Settings
from warehouse_authz.core.auth.schemas import AuthenticatedUser
from warehouse_authz.core.cache import (
    ExpiringCache,
    MemoryExpiringCache,
    RedisExpiringCache,
)
from warehouse_authz.core.constants import (
    PERMISSION_CACHE_KEY_PREFIX,
    WAREHOUSE_CACHE_KEY_PREFIX,
)
from warehouse_authz.core.errors import PermissionCheckError
from warehouse_authz.core.permissions.capability import (
    CapabilityDetector,
    CapabilityMode,
)
from warehouse_authz.core.permissions.schemas import (
    AllGranted,
    EffectivePermission,
    Explicit,
    PermissionGrant,
    Resolution,
    Restricted,
    Unrestricted,
    WarehouseAccess,
    WarehouseScope,
)
from warehouse_authz.core.permissions.stores import PermissionStore


logger = structlog.get_logger()


def merge_grants(
    role_grants: list[PermissionGrant],
    user_overrides: list[PermissionGrant],
) -> Explicit:
    """Combine role defaults and user overrides into one decision per code.

    An override always wins over the role grant for the same code. Codes
    present in neither list are absent from the result, which denies them.
    """
    permissions: dict[str, EffectivePermission] = {
        grant.code: EffectivePermission(
            code=grant.code,
            can_access=grant.can_access,
            is_visible=grant.is_visible,
            source="role",
        )
        for grant in role_grants
    }
    for override in user_overrides:
        permissions[override.code] = EffectivePermission(
            code=override.code,
            can_access=override.can_access,
            is_visible=override.is_visible,
            source="user",
        )
    return Explicit(permissions=permissions)


def scope_from_assignments(assignments: list[WarehouseAccess]) -> WarehouseScope:
    """No assignment rows means every warehouse, never none."""
    if not assignments:
        return Unrestricted()
    return Restricted(warehouses=tuple(assignments))


class AuthorizationEngine:
    """Resolves what a caller may do and which warehouses they may touch.

    Args:
        store: Source of grants, overrides and warehouse assignments
        permission_cache: Cache of Resolution values keyed by user ID
        warehouse_cache: Cache of WarehouseScope values keyed by user ID
        detector: Capability detector owned by this engine
        super_admin_role: Role that bypasses every check
        admin_role: Role that bypasses checks in legacy mode
    """

    def __init__(
        self,
        store: PermissionStore,
        permission_cache: ExpiringCache[Resolution],
        warehouse_cache: ExpiringCache[WarehouseScope],
        detector: CapabilityDetector,
        super_admin_role: str = "super_admin",
        admin_role: str = "admin",
    ) -> None:
        self.store = store
        self.permission_cache = permission_cache
        self.warehouse_cache = warehouse_cache
        self.detector = detector
        self.super_admin_role = super_admin_role
        self.admin_role = admin_role

    @classmethod
    def from_settings(
        cls, store: PermissionStore, settings: Settings
    ) -> "AuthorizationEngine":
        """Build an engine with the cache backend and probe mode from settings."""
        ttl = settings.permission_cache_ttl_seconds
        single_flight = settings.permission_cache_single_flight

        permission_cache: ExpiringCache[Resolution]
        warehouse_cache: ExpiringCache[WarehouseScope]
        if settings.permission_cache_backend == "redis":
            permission_cache = RedisExpiringCache(
                PERMISSION_CACHE_KEY_PREFIX,
                TypeAdapter(Resolution),
                ttl,
                prefix=settings.permission_cache_prefix,
                single_flight=single_flight,
            )
            warehouse_cache = RedisExpiringCache(
                WAREHOUSE_CACHE_KEY_PREFIX,
                TypeAdapter(WarehouseScope),
                ttl,
                prefix=settings.permission_cache_prefix,
                single_flight=single_flight,
            )
        else:
            permission_cache = MemoryExpiringCache(ttl, single_flight=single_flight)
            warehouse_cache = MemoryExpiringCache(ttl, single_flight=single_flight)

        return cls(
            store=store,
            permission_cache=permission_cache,
            warehouse_cache=warehouse_cache,
            detector=CapabilityDetector(store, settings.permission_mode),
            super_admin_role=settings.super_admin_role,
            admin_role=settings.admin_role,
        )

    def is_super_admin(self, user: AuthenticatedUser) -> bool:
        return user.role == self.super_admin_role

    # ============================================================
    # Permission resolution
    # ============================================================

    async def resolve_permissions(self, user: AuthenticatedUser) -> Resolution:
        """Resolve the caller's effective permissions.

        Returns:
            AllGranted for the super admin, and for everyone while the
            permission schema is legacy; otherwise an Explicit map, served
            from cache within the TTL window.

        Raises:
            PermissionCheckError: If the stores could not be read
        """
        if self.is_super_admin(user):
            return AllGranted(reason="super_admin")

        mode = await self.detector.permission_mode()
        if mode is CapabilityMode.LEGACY:
            if user.role == self.admin_role:
                return AllGranted(reason="legacy_admin")
            # The legacy schema cannot express per-code grants
            return AllGranted(reason="legacy_user")

        async def load() -> Resolution:
            role_grants = await self.store.fetch_role_grants(user.role)
            overrides = await self.store.fetch_user_overrides(user.user_id)
            return merge_grants(role_grants, overrides)

        try:
            return await self.permission_cache.get_or_load(str(user.user_id), load)
        except Exception as exc:
            logger.exception(
                "permission_resolution_failed",
                user_id=user.user_id,
                error_type=type(exc).__name__,
            )
            raise PermissionCheckError() from exc

    async def check_permission(self, user: AuthenticatedUser, code: str) -> bool:
        """Whether the caller may use a permission. False on any failure."""
        try:
            resolution = await self.resolve_permissions(user)
        except PermissionCheckError:
            return False
        return resolution.allows(code)

    async def is_permission_visible(self, user: AuthenticatedUser, code: str) -> bool:
        """Whether a permission's UI element is shown. False on any failure."""
        try:
            resolution = await self.resolve_permissions(user)
        except PermissionCheckError:
            return False
        return resolution.is_visible(code)

    async def get_all_user_permissions(
        self, user: AuthenticatedUser
    ) -> list[EffectivePermission]:
        """Every explicit decision for the caller; empty under a bypass."""
        resolution = await self.resolve_permissions(user)
        return resolution.effective_permissions()

    # ============================================================
    # Warehouse scoping
    # ============================================================

    async def resolve_warehouse_scope(self, user: AuthenticatedUser) -> WarehouseScope:
        """Resolve which warehouses the caller may access.

        Without the assignment table, the caller is limited to the
        warehouse in their session, or unrestricted if the session has
        none. With it, no rows means unrestricted and any rows form the
        allow-list.

        Raises:
            PermissionCheckError: If the assignment table could not be read
        """
        if self.is_super_admin(user):
            return Unrestricted()

        mode = await self.detector.warehouse_mode()
        if mode is CapabilityMode.LEGACY:
            if user.warehouse_id is None:
                return Unrestricted()
            return Restricted(
                warehouses=(
                    WarehouseAccess(warehouse_id=user.warehouse_id, is_default=True),
                )
            )

        async def load() -> WarehouseScope:
            assignments = await self.store.fetch_warehouse_assignments(user.user_id)
            return scope_from_assignments(assignments)

        try:
            # Admins with no rows land in Unrestricted like every other role
            return await self.warehouse_cache.get_or_load(str(user.user_id), load)
        except Exception as exc:
            logger.exception(
                "warehouse_resolution_failed",
                user_id=user.user_id,
                error_type=type(exc).__name__,
            )
            raise PermissionCheckError(
                "Warehouse access check failed",
                error_code="warehouse_check_failed",
            ) from exc

    async def get_accessible_warehouses(
        self, user: AuthenticatedUser
    ) -> WarehouseScope:
        return await self.resolve_warehouse_scope(user)

    # ============================================================
    # Invalidation and diagnostics
    # ============================================================

    async def clear_permission_cache(self, user_id: int | None = None) -> None:
        """Drop cached decisions.

        With a user ID, only that user's entries go and capability results
        are kept. Without one, everything goes and both schema probes run
        again on the next request.
        """
        if user_id is not None:
            key = str(user_id)
            await self.permission_cache.invalidate(key)
            await self.warehouse_cache.invalidate(key)
            logger.info("permission_cache_cleared", user_id=user_id)
            return

        await self.permission_cache.invalidate_all()
        await self.warehouse_cache.invalidate_all()
        self.detector.reset()
        logger.info("permission_cache_cleared", scope="all")

    def capability_snapshot(self) -> dict[str, dict[str, str | None]]:
        """Current probe states, for administrators only."""
        states = {
            "permissions": self.detector.permission_state,
            "warehouses": self.detector.warehouse_state,
        }
        return {
            name: {
                "mode": state.mode.value,
                "resolved_at": (
                    state.resolved_at.isoformat() if state.resolved_at else None
                ),
            }
            for name, state in states.items()
        }
