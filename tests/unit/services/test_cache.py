"""Unit tests for Redis cache service."""

import pytest

from catalog_service.infrastructure.redis import CacheService, embedding_cache_key


class TestCacheServiceGracefulDegradation:
    """CacheService should no-op safely when Redis is unavailable."""

    @pytest.fixture
    def cache(self) -> CacheService:
        return CacheService(None)

    @pytest.mark.asyncio
    async def test_get_returns_none(self, cache: CacheService) -> None:
        assert await cache.get("any-key") is None

    @pytest.mark.asyncio
    async def test_set_is_noop(self, cache: CacheService) -> None:
        await cache.set("key", [0.1, 0.2], ttl_seconds=60)  # should not raise

    @pytest.mark.asyncio
    async def test_health_check_returns_false(self, cache: CacheService) -> None:
        assert await cache.health_check() is False


class BrokenRedis:
    async def get(self, key: str) -> bytes:
        raise ConnectionError("connection reset")

    async def set(self, key: str, value: bytes, ex: int | None = None) -> None:
        raise ConnectionError("connection reset")

    async def ping(self) -> bool:
        raise ConnectionError("connection reset")


class TestCacheServiceErrors:
    @pytest.mark.asyncio
    async def test_errors_are_swallowed(self) -> None:
        cache = CacheService(BrokenRedis())

        assert await cache.get("key") is None
        await cache.set("key", [1.0], ttl_seconds=60)
        assert await cache.health_check() is False


def test_embedding_cache_key_is_stable() -> None:
    key = embedding_cache_key("text-embedding-3-small", "dome camera")
    assert key.startswith("query_emb:")
    assert key == embedding_cache_key("text-embedding-3-small", "dome camera")
    assert key != embedding_cache_key("text-embedding-3-large", "dome camera")
