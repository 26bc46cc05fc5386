"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tests.factories import FakePermissionStore
from warehouse_authz.core.cache import MemoryExpiringCache
from warehouse_authz.core.permissions import AuthorizationEngine, CapabilityDetector
from warehouse_authz.main import create_app


@pytest.fixture
def store() -> FakePermissionStore:
    """A store with both schema extensions present and no rows."""
    return FakePermissionStore()


@pytest.fixture
def authz_engine(store: FakePermissionStore) -> AuthorizationEngine:
    """An engine over the fake store with 60 second in-memory caches."""
    return AuthorizationEngine(
        store=store,
        permission_cache=MemoryExpiringCache(60),
        warehouse_cache=MemoryExpiringCache(60),
        detector=CapabilityDetector(store),
    )


@pytest.fixture
def app(authz_engine: AuthorizationEngine) -> FastAPI:
    """Create test application instance wired to the fake-store engine."""
    return create_app(authorization_engine=authz_engine)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
