"""Root API router with health endpoints and the versioned API."""

from fastapi import APIRouter
from pydantic import BaseModel

from warehouse_authz.api.routes import access


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str


api_router = APIRouter()

# Health check endpoints (no /api/v1 prefix)
health_router = APIRouter(tags=["health"])


@health_router.get(
    "/health/live",
    response_model=HealthResponse,
    summary="Liveness probe",
)
async def liveness() -> HealthResponse:
    """Returns 200 while the process is running; touches no store."""
    return HealthResponse(status="alive")


v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(access.router)

api_router.include_router(health_router)
api_router.include_router(v1_router)
