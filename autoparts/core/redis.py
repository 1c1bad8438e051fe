import redis.asyncio as redis
from typing import Optional, Protocol
from autoparts.core.config import settings
import logging

logger = logging.getLogger(__name__)


class CacheKeys:
    CATEGORY = "category:"
    CATEGORIES = "categories:"
    SEO = "seo:"


class CacheTTL:
    CATEGORY = 60 * 60  # 1 hour
    CATEGORIES = 60 * 60  # 1 hour
    SEO_SITEMAP = 24 * 60 * 60  # 24 hours


class CacheBackend(Protocol):
    """Key-value store the services cache through."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, expire: Optional[int] = None): ...

    async def delete(self, *keys: str): ...


class RedisClient:
    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis = None

    async def connect(self):
        """Connect to Redis"""
        try:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )
            # Test connection
            await self.redis.ping()
            logger.info("✅ Redis connected successfully")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {str(e)}")
            raise

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis disconnected")

    async def ping(self) -> bool:
        if not self.redis:
            await self.connect()
        return await self.redis.ping()

    async def get(self, key: str) -> Optional[str]:
        """Get value by key"""
        if not self.redis:
            await self.connect()
        return await self.redis.get(key)

    async def set(self, key: str, value: str, expire: Optional[int] = None):
        """Set key-value pair"""
        if not self.redis:
            await self.connect()
        return await self.redis.set(key, value, ex=expire or settings.CACHE_DEFAULT_TTL)

    async def delete(self, *keys: str):
        """Delete one or more keys"""
        if not keys:
            return 0
        if not self.redis:
            await self.connect()
        return await self.redis.delete(*keys)


# Process-wide client; services receive it through the get_cache dependency
redis_client = RedisClient()


async def get_cache() -> CacheBackend:
    return redis_client
