"""
Tests for the Redis-backed cache store.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.errors import TransientError
from app.services.infrastructure.redis_client import RedisCacheStore


def ready_store(client: AsyncMock) -> RedisCacheStore:
    store = RedisCacheStore("redis://localhost:6379/0")
    store.client = client
    store._initialized = True
    return store


class TestRedisCacheStore:
    """Tests for cache reads, writes and health."""

    @pytest.mark.asyncio
    async def test_set_uses_ttl(self):
        client = AsyncMock()
        store = ready_store(client)

        await store.set("contacts:u1:abc", "[]", 300)

        client.setex.assert_awaited_once_with("contacts:u1:abc", 300, "[]")

    @pytest.mark.asyncio
    async def test_get_returns_none_for_missing_key(self):
        client = AsyncMock()
        client.get.return_value = None
        store = ready_store(client)

        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_failure_raises_transient_error(self):
        client = AsyncMock()
        client.get.side_effect = ConnectionError("Connection refused")
        store = ready_store(client)

        with pytest.raises(TransientError):
            await store.get("contacts:u1:abc")

    @pytest.mark.asyncio
    async def test_ping_reports_failure_instead_of_raising(self):
        store = RedisCacheStore("redis://localhost:6379/0")

        with patch.object(store, "initialize", AsyncMock(side_effect=RuntimeError("down"))):
            assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_ping_success(self):
        client = AsyncMock()
        client.ping.return_value = True
        store = ready_store(client)

        assert await store.ping() is True

    @pytest.mark.asyncio
    async def test_failed_connect_is_not_retried_on_every_call(self):
        store = RedisCacheStore("redis://localhost:6379/0")
        initialize = AsyncMock(side_effect=RuntimeError("down"))

        with patch.object(store, "initialize", initialize):
            with pytest.raises(TransientError):
                await store.get("contacts:u1:abc")
            with pytest.raises(TransientError):
                await store.get("contacts:u1:abc")
            with pytest.raises(TransientError):
                await store.set("contacts:u1:abc", "[]", 300)

        assert initialize.await_count == 1

    @pytest.mark.asyncio
    async def test_reconnect_allowed_after_interval(self):
        store = RedisCacheStore("redis://localhost:6379/0")
        initialize = AsyncMock(side_effect=RuntimeError("down"))

        with patch.object(store, "initialize", initialize):
            with pytest.raises(TransientError):
                await store.get("contacts:u1:abc")
            store._last_attempt -= 60
            with pytest.raises(TransientError):
                await store.get("contacts:u1:abc")

        assert initialize.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_initialize_releases_pool(self):
        pool = MagicMock()
        pool.disconnect = AsyncMock()
        client = AsyncMock()
        client.ping.side_effect = ConnectionError("Connection refused")
        store = RedisCacheStore("redis://localhost:6379/0")

        with (
            patch("app.services.infrastructure.redis_client.ConnectionPool.from_url", return_value=pool),
            patch("app.services.infrastructure.redis_client.redis.Redis", return_value=client),
        ):
            with pytest.raises(RuntimeError):
                await store.initialize()

        pool.disconnect.assert_awaited_once()
        assert store.pool is None
        assert store.client is None
