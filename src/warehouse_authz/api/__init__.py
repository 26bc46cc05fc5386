"""API layer - routers and shared dependencies."""

from warehouse_authz.api.router import api_router


__all__ = ["api_router"]
