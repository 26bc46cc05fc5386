"""Route guards for permission and warehouse checks.

This module provides decorators that can be applied to FastAPI routes.
Guarded routes must declare ``current_user: CurrentUser`` and
``request: Request`` parameters; the guards read both from the handler's
keyword arguments and find the AuthorizationEngine on ``app.state``.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, cast

import structlog

from warehouse_authz.core.errors import (
    ForbiddenError,
    PermissionCheckError,
    UnauthorizedError,
)
from warehouse_authz.core.permissions.catalog import (
    action_code,
    feature_code,
    page_code,
)
from warehouse_authz.core.permissions.warehouse import (
    WarehouseFilter,
    extract_warehouse_id,
)


if TYPE_CHECKING:
    from fastapi import Request

    from warehouse_authz.core.auth.schemas import AuthenticatedUser
    from warehouse_authz.core.permissions.engine import AuthorizationEngine


logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")


def _get_context(
    kwargs: dict[str, Any],
) -> tuple["AuthenticatedUser", "Request", "AuthorizationEngine"]:
    """Extract the caller, the request and the engine from handler kwargs.

    Raises:
        UnauthorizedError: If no verified identity is present
        PermissionCheckError: If the route is missing the request or the
            app has no engine configured
    """
    user = cast("AuthenticatedUser | None", kwargs.get("current_user"))
    request = cast("Request | None", kwargs.get("request"))

    if user is None:
        raise UnauthorizedError(
            "Authentication required",
            error_code="auth_required",
        )

    engine = (
        getattr(request.app.state, "authorization_engine", None) if request else None
    )
    if request is None or engine is None:
        logger.error("permission_guard_misconfigured", has_request=request is not None)
        raise PermissionCheckError()

    return user, request, engine


def _log_bypass(user: "AuthenticatedUser", request: "Request", **extra: Any) -> None:
    logger.warning(
        "superuser_bypass",
        user_id=user.user_id,
        endpoint=request.url.path,
        **extra,
    )


def require_permission(
    *codes: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Require any one of the given permission codes.

    Usage:
        @router.post("/inbound")
        @require_permission("feature:inbound:create")
        async def create_inbound(request: Request, current_user: CurrentUser):
            ...

    Raises:
        ForbiddenError: If the caller holds none of the codes
        PermissionCheckError: If permissions could not be resolved
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            user, request, engine = _get_context(kwargs)

            if engine.is_super_admin(user):
                _log_bypass(user, request, permissions=list(codes))
                return await func(*args, **kwargs)

            resolution = await engine.resolve_permissions(user)

            if not any(resolution.allows(code) for code in codes):
                logger.info(
                    "permission_denied",
                    user_id=user.user_id,
                    required=list(codes),
                    endpoint=request.url.path,
                )
                raise ForbiddenError(
                    f"Missing required permission. Need one of: {', '.join(codes)}",
                    error_code="permission_denied",
                    details={"required_permissions": list(codes)},
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_all_permissions(
    *codes: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Require every one of the given permission codes.

    Usage:
        @router.post("/outbound/dispatch")
        @require_all_permissions("feature:outbound:edit", "action:outbound-dispatch")
        async def dispatch(request: Request, current_user: CurrentUser):
            ...

    Raises:
        ForbiddenError: Naming the codes the caller lacks
        PermissionCheckError: If permissions could not be resolved
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            user, request, engine = _get_context(kwargs)

            if engine.is_super_admin(user):
                _log_bypass(user, request, permissions=list(codes))
                return await func(*args, **kwargs)

            resolution = await engine.resolve_permissions(user)
            missing = resolution.missing(codes)

            if missing:
                logger.info(
                    "permission_denied",
                    user_id=user.user_id,
                    missing=missing,
                    endpoint=request.url.path,
                )
                raise ForbiddenError(
                    f"Missing required permissions: {', '.join(missing)}",
                    error_code="permission_denied",
                    details={"missing_permissions": missing},
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_warehouse_access(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Require access to the warehouse named by the request.

    Requests that name no warehouse pass; handlers are expected to narrow
    their queries with inject_warehouse_filter instead.

    Usage:
        @router.get("/warehouses/{warehouse_id}/stock")
        @require_warehouse_access
        async def stock(warehouse_id: int, request: Request, current_user: CurrentUser):
            ...

    Raises:
        ForbiddenError: Naming the warehouse the caller may not access
        BadRequestError: If the warehouse identifier is not an integer
        PermissionCheckError: If the warehouse scope could not be resolved
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        user, request, engine = _get_context(kwargs)

        if engine.is_super_admin(user):
            return await func(*args, **kwargs)

        warehouse_id = await extract_warehouse_id(request, user)
        if warehouse_id is None:
            return await func(*args, **kwargs)

        scope = await engine.resolve_warehouse_scope(user)
        if not scope.allows(warehouse_id):
            logger.info(
                "warehouse_access_denied",
                user_id=user.user_id,
                warehouse_id=warehouse_id,
                endpoint=request.url.path,
            )
            raise ForbiddenError(
                "You do not have access to this warehouse",
                error_code="warehouse_access_denied",
                details={"warehouse_id": warehouse_id},
            )

        return await func(*args, **kwargs)

    return wrapper


def inject_warehouse_filter(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Attach the caller's warehouse scope to ``request.state``.

    Never denies. Sets ``accessible_warehouses`` (None means every
    warehouse), ``default_warehouse_id`` and ``warehouse_filter``. On
    routes with an optional caller, anonymous requests get an empty
    allow-list.

    Raises:
        PermissionCheckError: If the warehouse scope could not be resolved
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if kwargs.get("current_user") is None:
            anonymous_request = cast("Request | None", kwargs.get("request"))
            if anonymous_request is not None:
                _attach_filter(anonymous_request, WarehouseFilter.anonymous())
            return await func(*args, **kwargs)

        user, request, engine = _get_context(kwargs)

        scope = await engine.resolve_warehouse_scope(user)
        _attach_filter(request, WarehouseFilter.from_scope(scope))

        return await func(*args, **kwargs)

    return wrapper


def _attach_filter(request: "Request", warehouse_filter: WarehouseFilter) -> None:
    request.state.accessible_warehouses = warehouse_filter.accessible_warehouses
    request.state.default_warehouse_id = warehouse_filter.default_warehouse_id
    request.state.warehouse_filter = warehouse_filter


def require_page_access(
    page: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Require the ``page:<page>`` permission."""
    return require_permission(page_code(page))


def require_feature_access(
    resource: str,
    action: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Require the ``feature:<resource>:<action>`` permission."""
    return require_permission(feature_code(resource, action))


def require_action_access(
    code: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Require the ``action:<code>`` permission."""
    return require_permission(action_code(code))
