from unittest.mock import AsyncMock, patch

import pytest

from runescan.services.cache_service import CacheService


@pytest.fixture
def redis_client():
    client = AsyncMock()
    with patch("redis.asyncio.Redis.from_url", return_value=client):
        yield client


async def test_get_returns_decoded_json(redis_client):
    redis_client.get.return_value = '{"runeName": "A"}'
    cache = CacheService("redis://localhost:6379/0")
    assert await cache.get("runestone:aa") == {"runeName": "A"}


async def test_get_miss(redis_client):
    redis_client.get.return_value = None
    cache = CacheService()
    assert await cache.get("runestone:aa") is None


async def test_get_error_is_swallowed(redis_client):
    redis_client.get.side_effect = Exception("connection lost")
    cache = CacheService()
    assert await cache.get("runestone:aa") is None


async def test_set_uses_ttl(redis_client):
    redis_client.setex.return_value = True
    cache = CacheService()
    assert await cache.set("k", {"a": 1}, 60) is True
    redis_client.setex.assert_awaited_once_with("k", 60, '{"a": 1}')


async def test_set_error(redis_client):
    redis_client.setex.side_effect = Exception("boom")
    cache = CacheService()
    assert await cache.set("k", {"a": 1}) is False


def test_generate_key(redis_client):
    cache = CacheService()
    assert cache.generate_key("runestone", "aa", 1) == "runestone:aa_1"
