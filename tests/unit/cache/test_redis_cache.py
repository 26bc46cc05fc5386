"""Unit tests for the Redis-backed expiring cache."""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import TypeAdapter

from warehouse_authz.core.cache import RedisExpiringCache
from warehouse_authz.core.permissions.schemas import (
    AllGranted,
    EffectivePermission,
    Explicit,
    Resolution,
    Restricted,
    WarehouseAccess,
    WarehouseScope,
)


pytestmark = pytest.mark.unit


@pytest.fixture
def mock_redis():
    """Patch redis_client with an AsyncMock client."""
    with patch("warehouse_authz.core.cache.redis.redis_client") as mock_client:
        mock_redis = AsyncMock()
        mock_client.return_value.__aenter__.return_value = mock_redis
        mock_client.return_value.__aexit__.return_value = None
        yield mock_redis


@pytest.fixture
def permission_cache() -> RedisExpiringCache:
    return RedisExpiringCache("perms", TypeAdapter(Resolution), 60, prefix="authz:")


class TestRedisExpiringCache:
    """Tests for key layout and serialization."""

    def test_key_prefix(self, permission_cache):
        assert permission_cache.key_prefix == "authz:perms:"

    async def test_set_uses_setex_with_ttl(self, permission_cache, mock_redis):
        await permission_cache.set("7", AllGranted(reason="super_admin"))

        mock_redis.setex.assert_called_once()
        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == "authz:perms:7"
        assert ttl == 60
        assert b'"all_granted"' in payload

    async def test_sub_second_ttl_rounds_up(self, mock_redis):
        cache = RedisExpiringCache("perms", TypeAdapter(Resolution), 0.5)

        await cache.set("7", AllGranted(reason="super_admin"))

        assert mock_redis.setex.call_args.args[1] == 1

    async def test_get_miss(self, permission_cache, mock_redis):
        mock_redis.get.return_value = None

        assert await permission_cache.get("7") is None
        mock_redis.get.assert_called_once_with("authz:perms:7")

    async def test_get_returns_same_variant(self, permission_cache, mock_redis):
        stored = Explicit(
            permissions={
                "page:qc": EffectivePermission(
                    code="page:qc", can_access=True, is_visible=False, source="user"
                )
            }
        )
        mock_redis.get.return_value = TypeAdapter(Resolution).dump_json(stored).decode()

        result = await permission_cache.get("7")

        assert isinstance(result, Explicit)
        assert result == stored

    async def test_warehouse_scope_variant(self, mock_redis):
        cache = RedisExpiringCache("warehouses", TypeAdapter(WarehouseScope), 60)
        stored = Restricted(
            warehouses=(WarehouseAccess(warehouse_id=3, is_default=True),)
        )
        mock_redis.get.return_value = (
            TypeAdapter(WarehouseScope).dump_json(stored).decode()
        )

        result = await cache.get("7")

        assert isinstance(result, Restricted)
        assert result.default_warehouse_id == 3

    async def test_invalidate_deletes_key(self, permission_cache, mock_redis):
        await permission_cache.invalidate("7")

        mock_redis.delete.assert_called_once_with("authz:perms:7")

    async def test_invalidate_all_scans_prefix(self, permission_cache, mock_redis):
        mock_redis.scan.side_effect = [
            (5, ["authz:perms:1", "authz:perms:2"]),
            (0, ["authz:perms:3"]),
        ]

        await permission_cache.invalidate_all()

        assert mock_redis.scan.call_count == 2
        assert mock_redis.scan.call_args.kwargs["match"] == "authz:perms:*"
        mock_redis.delete.assert_any_call("authz:perms:1", "authz:perms:2")
        mock_redis.delete.assert_any_call("authz:perms:3")

    async def test_get_or_load_writes_through(self, permission_cache, mock_redis):
        mock_redis.get.return_value = None
        loader = AsyncMock(return_value=AllGranted(reason="legacy_user"))

        result = await permission_cache.get_or_load("7", loader)

        assert result == AllGranted(reason="legacy_user")
        loader.assert_awaited_once()
        mock_redis.setex.assert_called_once()
