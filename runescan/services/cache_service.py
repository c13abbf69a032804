import json
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from runescan.config import settings

logger = structlog.get_logger()


class CacheService:
    def __init__(self, redis_url: Optional[str] = None):
        self.redis_client = redis.Redis.from_url(redis_url or settings.REDIS_URL, decode_responses=True)

    async def get(self, key: str) -> Optional[Any]:
        """Get cached value"""
        try:
            cached = await self.redis_client.get(key)
            if cached:
                return json.loads(cached)
        except Exception as e:
            logger.error("Cache get failed", key=key, error=str(e))
        return None

    async def set(self, key: str, value: Any, ttl: int = None) -> bool:
        """Set cached value with TTL"""
        try:
            return bool(
                await self.redis_client.setex(key, ttl or settings.CACHE_TTL, json.dumps(value, default=str))
            )
        except Exception as e:
            logger.error("Cache set failed", key=key, error=str(e))
            return False

    def generate_key(self, prefix: str, *args) -> str:
        """Generate cache key"""
        return f"{prefix}:{'_'.join(str(arg) for arg in args)}"

    async def close(self):
        await self.redis_client.aclose()
