"""Read access to the grant, override and warehouse-assignment tables.

The engine depends on the PermissionStore protocol only. SQLPermissionStore
is the production implementation; every call opens its own short session
and runs a non-transactional point query.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from warehouse_authz.core.permissions.models import (
    Permission,
    Role,
    RolePermission,
    UserPermissionOverride,
    UserWarehouse,
    Warehouse,
)
from warehouse_authz.core.permissions.schemas import PermissionGrant, WarehouseAccess


class PermissionStore(Protocol):
    """Everything the engine reads.

    Probe methods raise when the corresponding tables are missing or not
    queryable, and return None otherwise.
    """

    async def probe_permission_schema(self) -> None: ...

    async def probe_warehouse_schema(self) -> None: ...

    async def fetch_role_grants(self, role: str) -> list[PermissionGrant]: ...

    async def fetch_user_overrides(self, user_id: int) -> list[PermissionGrant]: ...

    async def fetch_warehouse_assignments(
        self, user_id: int
    ) -> list[WarehouseAccess]: ...


class SQLPermissionStore:
    """PermissionStore backed by SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def probe_permission_schema(self) -> None:
        """Touch every table of the extended permission schema."""
        async with self.session_factory() as session:
            for column in (
                Permission.code,
                RolePermission.permission_code,
                UserPermissionOverride.permission_code,
            ):
                await session.execute(select(column).limit(1))

    async def probe_warehouse_schema(self) -> None:
        """Touch the warehouse assignment table."""
        async with self.session_factory() as session:
            await session.execute(select(UserWarehouse.user_id).limit(1))

    async def fetch_role_grants(self, role: str) -> list[PermissionGrant]:
        """Get the default grants of a role, by role name."""
        stmt = (
            select(
                RolePermission.permission_code,
                RolePermission.is_enabled,
                RolePermission.is_visible,
            )
            .join(Role, Role.id == RolePermission.role_id)
            .where(Role.name == role)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            PermissionGrant(code=code, can_access=enabled, is_visible=visible)
            for code, enabled, visible in rows
        ]

    async def fetch_user_overrides(self, user_id: int) -> list[PermissionGrant]:
        """Get every override recorded for a user."""
        stmt = select(
            UserPermissionOverride.permission_code,
            UserPermissionOverride.is_enabled,
            UserPermissionOverride.is_visible,
        ).where(UserPermissionOverride.user_id == user_id)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            PermissionGrant(code=code, can_access=enabled, is_visible=visible)
            for code, enabled, visible in rows
        ]

    async def fetch_warehouse_assignments(self, user_id: int) -> list[WarehouseAccess]:
        """Get a user's warehouse allow-list entries, default first."""
        stmt = (
            select(UserWarehouse.warehouse_id, Warehouse.name, UserWarehouse.is_default)
            .join(Warehouse, Warehouse.id == UserWarehouse.warehouse_id)
            .where(UserWarehouse.user_id == user_id)
            .order_by(UserWarehouse.is_default.desc(), UserWarehouse.warehouse_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            WarehouseAccess(
                warehouse_id=warehouse_id,
                warehouse_name=name,
                is_default=is_default,
            )
            for warehouse_id, name, is_default in rows
        ]
