"""Static permission catalog.

Codes follow three shapes:
- ``page:<page>`` gates a whole screen and its route group
- ``feature:<resource>:<action>`` gates one operation on a resource
- ``action:<code>`` gates a single button or UI element

The catalog is the seed source for the permissions table and supplies
display metadata for resolved permissions. It never changes at runtime.
"""

from collections import defaultdict
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from warehouse_authz.core.constants import ACTION_PREFIX, FEATURE_PREFIX, PAGE_PREFIX


class PermissionDefinition(BaseModel):
    """Catalog entry for one permission code."""

    model_config = ConfigDict(frozen=True)

    code: str
    category: str
    display_name: str
    page: str


def page_code(page: str) -> str:
    return f"{PAGE_PREFIX}:{page}"


def feature_code(resource: str, action: str) -> str:
    return f"{FEATURE_PREFIX}:{resource}:{action}"


def action_code(code: str) -> str:
    return f"{ACTION_PREFIX}:{code}"


# page -> (feature actions, UI actions)
_PAGES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "dashboard": (("view", "export"), ("dashboard-filter", "dashboard-pivot")),
    "inbound": (
        ("view", "create", "edit", "delete", "upload", "export"),
        ("inbound-bulk-upload", "inbound-multi-entry"),
    ),
    "qc": (
        ("view", "create", "edit", "delete", "upload", "export"),
        ("qc-bulk-upload", "qc-approve"),
    ),
    "picking": (
        ("view", "create", "edit", "delete", "export"),
        ("picking-multi-entry",),
    ),
    "outbound": (
        ("view", "create", "edit", "delete", "upload", "export"),
        ("outbound-dispatch", "outbound-bulk-upload"),
    ),
    "customers": (("view", "create", "edit", "delete"), ()),
    "master-data": (
        ("view", "create", "edit", "delete", "upload", "export"),
        ("master-data-bulk-upload",),
    ),
    "reports": (("view", "export"), ("reports-pivot",)),
    "backups": (("view", "create", "restore", "delete"), ()),
    "users": (("view", "create", "edit", "delete"), ("users-reset-password",)),
    "permissions": (("view", "edit"), ("permissions-approve",)),
    "settings": (("view", "edit"), ("settings-appearance", "settings-error-logs")),
}


def _title(value: str) -> str:
    return value.replace("-", " ").replace("_", " ").title()


def _build_catalog() -> tuple[PermissionDefinition, ...]:
    entries: list[PermissionDefinition] = []
    for page, (features, actions) in _PAGES.items():
        entries.append(
            PermissionDefinition(
                code=page_code(page),
                category=PAGE_PREFIX,
                display_name=f"{_title(page)} page",
                page=page,
            )
        )
        entries.extend(
            PermissionDefinition(
                code=feature_code(page, action),
                category=FEATURE_PREFIX,
                display_name=f"{_title(action)} {_title(page)}",
                page=page,
            )
            for action in features
        )
        entries.extend(
            PermissionDefinition(
                code=action_code(action),
                category=ACTION_PREFIX,
                display_name=_title(action),
                page=page,
            )
            for action in actions
        )
    return tuple(entries)


PERMISSION_CATALOG: tuple[PermissionDefinition, ...] = _build_catalog()

_BY_CODE = MappingProxyType({entry.code: entry for entry in PERMISSION_CATALOG})


def get_definition(code: str) -> PermissionDefinition | None:
    """Look up a catalog entry by code."""
    return _BY_CODE.get(code)


def all_codes() -> list[str]:
    return [entry.code for entry in PERMISSION_CATALOG]


def group_by_page() -> dict[str, list[PermissionDefinition]]:
    """Catalog entries grouped by page, in catalog order."""
    grouped: dict[str, list[PermissionDefinition]] = defaultdict(list)
    for entry in PERMISSION_CATALOG:
        grouped[entry.page].append(entry)
    return dict(grouped)
