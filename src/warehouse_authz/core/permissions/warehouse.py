"""Warehouse identifiers in requests and the scope handed to route handlers."""

from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ConfigDict

from warehouse_authz.core.constants import WAREHOUSE_ID_FIELDS
from warehouse_authz.core.errors import BadRequestError
from warehouse_authz.core.permissions.schemas import WarehouseScope


if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy import Select
    from sqlalchemy.sql import ColumnElement

    from warehouse_authz.core.auth.schemas import AuthenticatedUser


S = TypeVar("S", bound="Select[Any]")

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class WarehouseFilter(BaseModel):
    """Warehouse scope attached to a request for its handler to enforce.

    Attributes:
        accessible_warehouses: None when unrestricted, otherwise the allow-list
        default_warehouse_id: Preferred warehouse for new records, if any
        clause: SQL predicate text, empty when unrestricted
    """

    model_config = ConfigDict(frozen=True)

    accessible_warehouses: list[int] | None = None
    default_warehouse_id: int | None = None
    clause: str = ""

    @classmethod
    def from_scope(
        cls, scope: WarehouseScope, column: str = "warehouse_id"
    ) -> "WarehouseFilter":
        ids = scope.warehouse_ids
        if ids is None:
            return cls()
        return cls(
            accessible_warehouses=ids,
            default_warehouse_id=scope.default_warehouse_id,
            clause=f"{column} IN ({','.join(str(i) for i in ids)})",
        )

    @classmethod
    def anonymous(cls) -> "WarehouseFilter":
        """Empty allow-list for requests without a caller; matches no rows."""
        return cls(accessible_warehouses=[], clause="1 = 0")

    @property
    def is_unrestricted(self) -> bool:
        return self.accessible_warehouses is None

    def apply(self, stmt: S, column: "ColumnElement[int]") -> S:
        """Narrow a select statement to the accessible warehouses.

        Usage:
            wf = request.state.warehouse_filter
            stmt = wf.apply(select(Inbound), Inbound.warehouse_id)
        """
        if self.accessible_warehouses is None:
            return stmt
        return stmt.where(column.in_(self.accessible_warehouses))


def _parse_warehouse_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise BadRequestError(
            "Warehouse ID must be an integer",
            error_code="invalid_warehouse_id",
        )
    try:
        warehouse_id = int(value)
    except (TypeError, ValueError) as exc:
        raise BadRequestError(
            "Warehouse ID must be an integer",
            error_code="invalid_warehouse_id",
            details={"warehouse_id": str(value)},
        ) from exc
    # 0 is how clients spell "no warehouse"
    return warehouse_id if warehouse_id > 0 else None


async def _read_json_body(request: "Request") -> dict[str, Any]:
    if request.method not in _BODY_METHODS:
        return {}
    if "application/json" not in request.headers.get("content-type", ""):
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def extract_warehouse_id(
    request: "Request",
    user: "AuthenticatedUser",
) -> int | None:
    """Find the warehouse a request targets.

    Checked in order: the session warehouse, the JSON body, path
    parameters, then the query string. The first source that names a
    warehouse decides. Empty values and 0 name nothing, so the search
    moves on; None means no source names a warehouse.

    Raises:
        BadRequestError: If the deciding value is not an integer
    """
    if user.warehouse_id:
        return user.warehouse_id

    body = await _read_json_body(request)
    sources = (body, request.path_params, request.query_params)
    for source in sources:
        for field in WAREHOUSE_ID_FIELDS:
            warehouse_id = _parse_warehouse_id(source.get(field))
            if warehouse_id is not None:
                return warehouse_id
    return None
