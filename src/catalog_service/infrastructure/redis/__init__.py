"""Redis cache for query embeddings.

Caching is best effort: when Redis is unreachable every operation is a no-op
and callers fall through to the model API.
"""

import hashlib
from typing import Any

import orjson
import redis.asyncio as aioredis
import structlog

from catalog_service.config import get_settings

logger = structlog.get_logger()

_redis_client: aioredis.Redis | None = None


async def get_redis_client() -> aioredis.Redis | None:
    """Get or create the global async Redis client, None if unreachable."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        try:
            client = aioredis.from_url(
                settings.redis_url,
                decode_responses=False,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            await client.ping()
            _redis_client = client
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning("Redis unavailable, embedding cache disabled", error=str(e))
            return None
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def embedding_cache_key(model: str, text: str) -> str:
    digest = hashlib.sha1(f"{model}:{text}".encode("utf-8")).hexdigest()
    return f"query_emb:{digest}"


class CacheService:
    """Async Redis cache with orjson serialization. No-ops without a client."""

    def __init__(self, client: aioredis.Redis | None):
        self.client = client

    async def get(self, key: str) -> Any | None:
        if not self.client:
            return None
        try:
            data = await self.client.get(key)
            if data:
                return orjson.loads(data)
        except Exception as e:
            logger.warning("Cache get failed", key=key, error=str(e))
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if not self.client:
            return
        try:
            await self.client.set(key, orjson.dumps(value), ex=ttl_seconds)
        except Exception as e:
            logger.warning("Cache set failed", key=key, error=str(e))

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except Exception:
            return False
