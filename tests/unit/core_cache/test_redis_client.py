import pytest
from redis import asyncio as aioredis

from core_cache import redis_client


@pytest.mark.asyncio
async def test_pool_is_built_once_from_settings(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6380/3")
    pool = redis_client.get_redis_pool()
    assert isinstance(pool, aioredis.Redis)
    assert redis_client.get_redis_pool() is pool
    kwargs = pool.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache.internal"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 3

    await redis_client.close_redis_pool()
    assert redis_client._pool is None
