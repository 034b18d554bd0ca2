import redis.asyncio as redis
from typing import Optional
from app.core.config import settings

# Redis client instance
redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    global redis_client
    if redis_client is None:
        redis_client = await redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )
    return redis_client


async def close_redis():
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


class RedisCache:
    """Redis cache helper."""

    def __init__(self):
        self.client: Optional[redis.Redis] = None

    async def _get_client(self):
        if not self.client:
            self.client = await get_redis()
        return self.client

    async def set_if_absent(self, key: str, value: str, expire: int = 3600) -> bool:
        """Set value only when the key does not exist yet. True if it was set."""
        client = await self._get_client()
        return bool(await client.set(key, value, ex=expire, nx=True))


# Global instance
cache = RedisCache()
