"""Permission and warehouse-assignment database models.

This module maps the tables the engine reads:
- Permission: the catalog of grantable codes
- Role: named roles referenced by users' role column
- RolePermission: a role's default decision for a code
- UserPermissionOverride: a per-user exception that beats the role default
- Warehouse / UserWarehouse: per-user warehouse allow-list entries

Rows are written by administrative flows; the engine only reads them.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_authz.core.constants import (
    MAX_CATEGORY_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PERMISSION_CODE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
    MAX_WAREHOUSE_CODE_LENGTH,
)
from warehouse_authz.core.database.base import Base, IntegerIdMixin, TimestampMixin


class Permission(Base, TimestampMixin):
    """A grantable capability or UI element.

    Attributes:
        code: Stable identifier, e.g. "feature:inbound:create"
        name: Display name
        category: "page", "feature" or "action"
        page: Page the code belongs to, used for grouping
        parent_code: Optional parent for nested UI elements
        sort_order: Display ordering
    """

    __tablename__ = "permissions"

    code: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_CODE_LENGTH),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False)
    category: Mapped[str] = mapped_column(
        String(MAX_CATEGORY_LENGTH),
        nullable=False,
        index=True,
    )
    page: Mapped[str | None] = mapped_column(String(MAX_CATEGORY_LENGTH), nullable=True)
    parent_code: Mapped[str | None] = mapped_column(
        String(MAX_PERMISSION_CODE_LENGTH),
        nullable=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission({self.code})>"


class Role(Base, IntegerIdMixin, TimestampMixin):
    """A named role. Lower priority values rank higher."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    priority: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    grants: Mapped[list["RolePermission"]] = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class RolePermission(Base):
    """A role's default decision for one permission code."""

    __tablename__ = "role_permissions"

    role_id: Mapped[int] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    permission_code: Mapped[str] = mapped_column(
        ForeignKey("permissions.code", ondelete="CASCADE"),
        primary_key=True,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    role: Mapped["Role"] = relationship("Role", back_populates="grants")

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, code={self.permission_code})>"


class UserPermissionOverride(Base, TimestampMixin):
    """A per-user decision that takes precedence over the role default."""

    __tablename__ = "user_permission_overrides"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    permission_code: Mapped[str] = mapped_column(
        ForeignKey("permissions.code", ondelete="CASCADE"),
        primary_key=True,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<UserPermissionOverride(user_id={self.user_id}, "
            f"code={self.permission_code})>"
        )


class Warehouse(Base, IntegerIdMixin, TimestampMixin):
    """A physical warehouse."""

    __tablename__ = "warehouses"

    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False)
    code: Mapped[str] = mapped_column(
        String(MAX_WAREHOUSE_CODE_LENGTH),
        unique=True,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Warehouse(id={self.id}, code={self.code})>"


class UserWarehouse(Base, TimestampMixin):
    """An allow-list entry. A user with no rows here is unrestricted."""

    __tablename__ = "user_warehouses"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"),
        primary_key=True,
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<UserWarehouse(user_id={self.user_id}, "
            f"warehouse_id={self.warehouse_id})>"
        )
