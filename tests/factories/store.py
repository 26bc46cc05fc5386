"""In-memory PermissionStore with call counting."""

from collections import Counter, defaultdict

from warehouse_authz.core.permissions.schemas import PermissionGrant, WarehouseAccess


class MissingTableError(Exception):
    """Stands in for the driver error raised on a missing relation."""


class FakePermissionStore:
    """PermissionStore backed by dictionaries.

    ``calls`` counts every method call by name. Setting ``fail_with`` makes
    every fetch raise that exception; probes are controlled separately by
    ``permission_schema`` and ``warehouse_schema``.
    """

    def __init__(
        self,
        permission_schema: bool = True,
        warehouse_schema: bool = True,
    ) -> None:
        self.permission_schema = permission_schema
        self.warehouse_schema = warehouse_schema
        self.role_grants: dict[str, list[PermissionGrant]] = defaultdict(list)
        self.user_overrides: dict[int, list[PermissionGrant]] = defaultdict(list)
        self.warehouse_assignments: dict[int, list[WarehouseAccess]] = defaultdict(list)
        self.calls: Counter[str] = Counter()
        self.fail_with: Exception | None = None

    # Seeding helpers

    def grant(
        self, role: str, code: str, can_access: bool = True, is_visible: bool = True
    ) -> None:
        self.role_grants[role].append(
            PermissionGrant(code=code, can_access=can_access, is_visible=is_visible)
        )

    def override(
        self, user_id: int, code: str, can_access: bool = True, is_visible: bool = True
    ) -> None:
        self.user_overrides[user_id].append(
            PermissionGrant(code=code, can_access=can_access, is_visible=is_visible)
        )

    def assign(
        self,
        user_id: int,
        warehouse_id: int,
        is_default: bool = False,
        name: str | None = None,
    ) -> None:
        self.warehouse_assignments[user_id].append(
            WarehouseAccess(
                warehouse_id=warehouse_id,
                warehouse_name=name or f"Warehouse {warehouse_id}",
                is_default=is_default,
            )
        )

    # PermissionStore

    async def probe_permission_schema(self) -> None:
        self.calls["probe_permission_schema"] += 1
        if not self.permission_schema:
            raise MissingTableError('relation "role_permissions" does not exist')

    async def probe_warehouse_schema(self) -> None:
        self.calls["probe_warehouse_schema"] += 1
        if not self.warehouse_schema:
            raise MissingTableError('relation "user_warehouses" does not exist')

    async def fetch_role_grants(self, role: str) -> list[PermissionGrant]:
        self.calls["fetch_role_grants"] += 1
        if self.fail_with:
            raise self.fail_with
        return list(self.role_grants.get(role, []))

    async def fetch_user_overrides(self, user_id: int) -> list[PermissionGrant]:
        self.calls["fetch_user_overrides"] += 1
        if self.fail_with:
            raise self.fail_with
        return list(self.user_overrides.get(user_id, []))

    async def fetch_warehouse_assignments(self, user_id: int) -> list[WarehouseAccess]:
        self.calls["fetch_warehouse_assignments"] += 1
        if self.fail_with:
            raise self.fail_with
        return list(self.warehouse_assignments.get(user_id, []))
