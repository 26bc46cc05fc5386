"""Result types produced by permission and warehouse resolution.

Both results are tagged unions rather than maps with magic keys:

- ``Resolution`` is either ``AllGranted`` (every check passes) or
  ``Explicit`` (a per-code map where anything absent is denied).
- ``WarehouseScope`` is either ``Unrestricted`` or ``Restricted`` (a
  non-empty allow-list). An empty allow-list cannot be represented, so a
  caller with no assignments can never be mistaken for one with no access.

All models are frozen and serialize through pydantic, which is what lets
the Redis cache hand back the same variant it stored.
"""

from collections.abc import Iterable
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


# Where an explicit decision came from; bypasses are reported by BypassReason
PermissionSource = Literal["user", "role"]
BypassReason = Literal["super_admin", "legacy_admin", "legacy_user"]


class PermissionGrant(BaseModel):
    """One stored grant row, either a role default or a user override."""

    model_config = ConfigDict(frozen=True)

    code: str
    can_access: bool
    is_visible: bool


class EffectivePermission(BaseModel):
    """The single decision for one (user, permission) pair."""

    model_config = ConfigDict(frozen=True)

    code: str
    can_access: bool
    is_visible: bool
    source: PermissionSource


class AllGranted(BaseModel):
    """Every permission check passes.

    reason records which bypass applied: the super admin role, an admin
    while the permission schema is in legacy mode, or any authenticated
    user while the permission schema is in legacy mode.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["all_granted"] = "all_granted"
    reason: BypassReason

    def allows(self, code: str) -> bool:  # noqa: ARG002
        return True

    def is_visible(self, code: str) -> bool:  # noqa: ARG002
        return True

    def missing(self, codes: Iterable[str]) -> list[str]:  # noqa: ARG002
        return []

    def effective_permissions(self) -> list[EffectivePermission]:
        return []


class Explicit(BaseModel):
    """Per-code decisions; codes absent from the map are denied.

    Callers must treat ``permissions`` as read-only; the same instance is
    served to every request that hits the cache.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["explicit"] = "explicit"
    permissions: dict[str, EffectivePermission] = Field(default_factory=dict)

    def allows(self, code: str) -> bool:
        perm = self.permissions.get(code)
        return perm is not None and perm.can_access

    def is_visible(self, code: str) -> bool:
        perm = self.permissions.get(code)
        return perm is not None and perm.is_visible

    def missing(self, codes: Iterable[str]) -> list[str]:
        return [code for code in codes if not self.allows(code)]

    def effective_permissions(self) -> list[EffectivePermission]:
        return sorted(self.permissions.values(), key=lambda p: p.code)


Resolution = Annotated[AllGranted | Explicit, Field(discriminator="kind")]


class WarehouseAccess(BaseModel):
    """One warehouse a caller is allowed to work in."""

    model_config = ConfigDict(frozen=True)

    warehouse_id: int
    warehouse_name: str | None = None
    is_default: bool = False


class Unrestricted(BaseModel):
    """The caller may see and mutate every warehouse."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unrestricted"] = "unrestricted"

    def allows(self, warehouse_id: int) -> bool:  # noqa: ARG002
        return True

    @property
    def warehouse_ids(self) -> None:
        return None

    @property
    def default_warehouse_id(self) -> None:
        return None


class Restricted(BaseModel):
    """The caller may only work in the listed warehouses."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["restricted"] = "restricted"
    warehouses: tuple[WarehouseAccess, ...] = Field(min_length=1)

    def allows(self, warehouse_id: int) -> bool:
        return any(w.warehouse_id == warehouse_id for w in self.warehouses)

    @property
    def warehouse_ids(self) -> list[int]:
        return [w.warehouse_id for w in self.warehouses]

    @property
    def default_warehouse_id(self) -> int:
        for warehouse in self.warehouses:
            if warehouse.is_default:
                return warehouse.warehouse_id
        return self.warehouses[0].warehouse_id


WarehouseScope = Annotated[Unrestricted | Restricted, Field(discriminator="kind")]
