"""Unit tests for permission resolution in the AuthorizationEngine."""

import pytest
from pydantic import ValidationError

from tests.factories import FakePermissionStore, make_user
from warehouse_authz.core.cache import MemoryExpiringCache
from warehouse_authz.core.errors import PermissionCheckError
from warehouse_authz.core.permissions import (
    AllGranted,
    AuthorizationEngine,
    CapabilityDetector,
    CapabilityMode,
    EffectivePermission,
    Explicit,
    PermissionGrant,
)
from warehouse_authz.core.permissions.engine import merge_grants


pytestmark = pytest.mark.unit


def build_engine(store: FakePermissionStore, **kwargs) -> AuthorizationEngine:
    return AuthorizationEngine(
        store=store,
        permission_cache=MemoryExpiringCache(60),
        warehouse_cache=MemoryExpiringCache(60),
        detector=CapabilityDetector(store, **kwargs),
    )


class TestMergeGrants:
    """Tests for combining role defaults with user overrides."""

    def test_role_grants_only(self):
        result = merge_grants(
            [PermissionGrant(code="page:qc", can_access=True, is_visible=True)], []
        )

        assert result.allows("page:qc")
        assert result.permissions["page:qc"].source == "role"

    def test_override_wins_over_role(self):
        result = merge_grants(
            [PermissionGrant(code="page:qc", can_access=True, is_visible=True)],
            [PermissionGrant(code="page:qc", can_access=False, is_visible=False)],
        )

        assert not result.allows("page:qc")
        assert not result.is_visible("page:qc")
        assert result.permissions["page:qc"].source == "user"

    def test_override_can_grant_beyond_role(self):
        result = merge_grants(
            [],
            [
                PermissionGrant(
                    code="action:qc-approve", can_access=True, is_visible=True
                )
            ],
        )

        assert result.allows("action:qc-approve")

    def test_absent_code_is_denied(self):
        result = merge_grants([], [])

        assert not result.allows("page:qc")
        assert not result.is_visible("page:qc")
        assert result.missing(["page:qc"]) == ["page:qc"]

    def test_access_and_visibility_are_independent(self):
        result = merge_grants(
            [PermissionGrant(code="page:reports", can_access=True, is_visible=False)],
            [],
        )

        assert result.allows("page:reports")
        assert not result.is_visible("page:reports")

    def test_source_is_role_or_user_only(self):
        """Bypasses are reported by AllGranted.reason, never as a source."""
        with pytest.raises(ValidationError):
            EffectivePermission(
                code="page:qc", can_access=True, is_visible=True, source="legacy"
            )


class TestResolvePermissions:
    """Tests for resolve_permissions across modes."""

    async def test_role_grant_with_user_revocation(self, store, authz_engine):
        """Role grants create but the user override revokes it."""
        store.grant("operator", "feature:inbound:create")
        store.override(42, "feature:inbound:create", can_access=False)

        allowed = await authz_engine.check_permission(
            make_user(42, "operator"), "feature:inbound:create"
        )

        assert allowed is False

    async def test_explicit_resolution(self, store, authz_engine):
        store.grant("operator", "page:inbound")
        store.grant("operator", "feature:inbound:view", is_visible=False)

        resolution = await authz_engine.resolve_permissions(make_user(42, "operator"))

        assert isinstance(resolution, Explicit)
        assert resolution.allows("page:inbound")
        assert not resolution.is_visible("feature:inbound:view")

    async def test_super_admin_bypasses_stores(self, store, authz_engine):
        resolution = await authz_engine.resolve_permissions(make_user(1, "super_admin"))

        assert resolution == AllGranted(reason="super_admin")
        assert sum(store.calls.values()) == 0

    async def test_super_admin_allowed_unknown_code(self, authz_engine):
        assert await authz_engine.check_permission(
            make_user(1, "super_admin"), "feature:nonexistent:thing"
        )

    async def test_legacy_mode_admin(self):
        store = FakePermissionStore(permission_schema=False)
        engine = build_engine(store)

        resolution = await engine.resolve_permissions(make_user(2, "admin"))

        assert resolution == AllGranted(reason="legacy_admin")

    async def test_legacy_mode_regular_user(self):
        store = FakePermissionStore(permission_schema=False)
        engine = build_engine(store)

        resolution = await engine.resolve_permissions(make_user(42, "operator"))

        assert resolution == AllGranted(reason="legacy_user")
        assert store.calls["fetch_role_grants"] == 0

    async def test_pinned_legacy_mode(self, store):
        engine = build_engine(store, permission_mode="legacy")

        resolution = await engine.resolve_permissions(make_user(42, "operator"))

        assert resolution == AllGranted(reason="legacy_user")
        assert store.calls["probe_permission_schema"] == 0

    async def test_admin_in_full_mode_is_explicit(self, store, authz_engine):
        """Only super_admin bypasses once the permission tables exist."""
        resolution = await authz_engine.resolve_permissions(make_user(2, "admin"))

        assert isinstance(resolution, Explicit)
        assert not resolution.allows("page:users")

    async def test_repeat_resolution_is_cached(self, store, authz_engine):
        user = make_user(42, "operator")
        store.grant("operator", "page:qc")

        first = await authz_engine.resolve_permissions(user)
        second = await authz_engine.resolve_permissions(user)

        assert first == second
        assert store.calls["fetch_role_grants"] == 1
        assert store.calls["fetch_user_overrides"] == 1

    async def test_store_failure_raises_permission_check_error(
        self, store, authz_engine
    ):
        store.fail_with = ConnectionError("db gone")

        with pytest.raises(PermissionCheckError) as exc_info:
            await authz_engine.resolve_permissions(make_user(42, "operator"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "permission_check_failed"

    async def test_failure_is_not_cached(self, store, authz_engine):
        user = make_user(42, "operator")
        store.grant("operator", "page:qc")
        store.fail_with = ConnectionError("db gone")
        with pytest.raises(PermissionCheckError):
            await authz_engine.resolve_permissions(user)

        store.fail_with = None

        assert (await authz_engine.resolve_permissions(user)).allows("page:qc")

    async def test_check_permission_false_on_failure(self, store, authz_engine):
        store.fail_with = ConnectionError("db gone")

        assert not await authz_engine.check_permission(
            make_user(42, "operator"), "page:qc"
        )
        assert not await authz_engine.is_permission_visible(
            make_user(42, "operator"), "page:qc"
        )

    async def test_get_all_user_permissions_sorted(self, store, authz_engine):
        store.grant("operator", "page:qc")
        store.grant("operator", "page:inbound")
        store.override(42, "action:qc-approve")

        perms = await authz_engine.get_all_user_permissions(make_user(42, "operator"))

        assert [p.code for p in perms] == [
            "action:qc-approve",
            "page:inbound",
            "page:qc",
        ]
        assert perms[0].source == "user"

    async def test_get_all_user_permissions_empty_for_bypass(self, authz_engine):
        perms = await authz_engine.get_all_user_permissions(make_user(1, "super_admin"))

        assert perms == []


class TestClearPermissionCache:
    """Tests for per-user and global invalidation."""

    async def test_user_bust_rereads_stores_only(self, store, authz_engine):
        user = make_user(42, "operator")
        await authz_engine.resolve_permissions(user)
        await authz_engine.resolve_warehouse_scope(user)

        store.override(42, "page:qc")
        await authz_engine.clear_permission_cache(42)
        resolution = await authz_engine.resolve_permissions(user)
        await authz_engine.resolve_warehouse_scope(user)

        assert resolution.allows("page:qc")
        assert store.calls["fetch_user_overrides"] == 2
        assert store.calls["fetch_warehouse_assignments"] == 2
        assert store.calls["probe_permission_schema"] == 1
        assert store.calls["probe_warehouse_schema"] == 1

    async def test_user_bust_leaves_other_users_cached(self, store, authz_engine):
        await authz_engine.resolve_permissions(make_user(42, "operator"))
        await authz_engine.resolve_permissions(make_user(43, "operator"))

        await authz_engine.clear_permission_cache(42)
        await authz_engine.resolve_permissions(make_user(43, "operator"))

        assert store.calls["fetch_user_overrides"] == 2

    async def test_global_bust_reprobes(self, store, authz_engine):
        user = make_user(42, "operator")
        await authz_engine.resolve_permissions(user)
        await authz_engine.resolve_warehouse_scope(user)

        await authz_engine.clear_permission_cache()

        assert authz_engine.detector.permission_state.mode is CapabilityMode.UNKNOWN
        await authz_engine.resolve_permissions(user)
        await authz_engine.resolve_warehouse_scope(user)
        assert store.calls["probe_permission_schema"] == 2
        assert store.calls["probe_warehouse_schema"] == 2
        assert store.calls["fetch_role_grants"] == 2

    async def test_global_bust_picks_up_migration(self):
        """A deployment migrated while running leaves legacy mode after a bust."""
        store = FakePermissionStore(permission_schema=False)
        engine = build_engine(store)
        user = make_user(42, "operator")
        assert isinstance(await engine.resolve_permissions(user), AllGranted)

        store.permission_schema = True
        await engine.clear_permission_cache()

        assert isinstance(await engine.resolve_permissions(user), Explicit)

    async def test_capability_snapshot(self, authz_engine):
        await authz_engine.resolve_permissions(make_user(42, "operator"))

        snapshot = authz_engine.capability_snapshot()

        assert snapshot["permissions"]["mode"] == "full"
        assert snapshot["permissions"]["resolved_at"] is not None
        assert snapshot["warehouses"] == {"mode": "unknown", "resolved_at": None}
