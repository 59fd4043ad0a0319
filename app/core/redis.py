import redis.asyncio as redis
from redis.exceptions import RedisError
from typing import Optional
import json
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    def __init__(self):
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis"""
        self.redis = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def ping(self) -> bool:
        if not self.redis:
            return False
        return await self.redis.ping()

    async def get(self, key: str) -> Optional[str]:
        """Get value from Redis"""
        if not self.redis:
            return None
        return await self.redis.get(key)

    async def set(self, key: str, value: str, expire: int = 3600) -> bool:
        """Set value in Redis with expiration"""
        if not self.redis:
            return False
        return await self.redis.set(key, value, ex=expire)

    async def get_json(self, key: str) -> Optional[dict]:
        """Get JSON value from Redis; a cache outage reads as a miss"""
        try:
            value = await self.get(key)
        except RedisError as e:
            logger.warning("Redis read failed for %s: %s", key, e)
            return None
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return None
        return None

    async def set_json(self, key: str, value: dict, expire: int = 3600) -> bool:
        """Set JSON value in Redis"""
        try:
            json_str = json.dumps(value)
            return await self.set(key, json_str, expire)
        except (TypeError, ValueError):
            return False
        except RedisError as e:
            logger.warning("Redis write failed for %s: %s", key, e)
            return False


# Global Redis client instance
redis_client = RedisClient()

