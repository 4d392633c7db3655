"""
Redis client: auth nonces, cached treasury balance, cached contract admin
Singleton pattern with async support
"""
import os
import json
from typing import Optional, Any
from redis import asyncio as aioredis
from redis.asyncio import Redis
import logging

logger = logging.getLogger(__name__)

# Keys shared across services and jobs
UNIFIED_BALANCE_KEY = "treasury:unified_balance"
LAST_SYNC_KEY = "treasury:last_sync"
CONTRACT_ADMIN_KEY = "contract:admin"
LAST_BLOCK_KEY = "chain:last_block"


def nonce_key(address: str) -> str:
    return f"auth:nonce:{address.lower()}"


class RedisClient:
    """Async Redis client singleton with caching helpers"""

    _instance: Optional[Redis] = None

    @classmethod
    def build_url(cls) -> str:
        # Priority: REDIS_URL > construct from REDIS_HOST/PORT
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            return redis_url

        redis_host = os.getenv("REDIS_HOST", "localhost")
        redis_port = os.getenv("REDIS_PORT", "6379")
        redis_password = os.getenv("REDIS_PASSWORD")

        if redis_password:
            return f"redis://:{redis_password}@{redis_host}:{redis_port}"
        return f"redis://{redis_host}:{redis_port}"

    @classmethod
    async def get_client(cls) -> Optional[Redis]:
        """Get or create Redis client instance, None when Redis is unreachable"""
        if cls._instance is None:
            redis_url = cls.build_url()
            try:
                cls._instance = aioredis.from_url(
                    redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                    health_check_interval=30
                )
                await cls._instance.ping()
                logger.info(f"✅ Redis connected: {redis_url.split('@')[-1]}")
            except Exception as e:
                logger.warning(f"⚠️ Redis connection failed: {e}. Cache disabled.")
                cls._instance = None

        return cls._instance

    @classmethod
    async def get_value(cls, key: str) -> Optional[str]:
        """Raw string value or None (miss, or Redis down)"""
        client = await cls.get_client()
        if not client:
            return None
        try:
            return await client.get(key)
        except Exception as e:
            logger.warning(f"⚠️ Redis get failed for {key}: {e}")
            return None

    @classmethod
    async def set_value(cls, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store a raw string value, optionally with TTL. Returns False when Redis is unavailable"""
        client = await cls.get_client()
        if not client:
            return False
        try:
            if ttl_seconds:
                await client.setex(key, ttl_seconds, str(value))
            else:
                await client.set(key, str(value))
            return True
        except Exception as e:
            logger.warning(f"⚠️ Redis set failed for {key}: {e}")
            return False

    @classmethod
    async def delete(cls, key: str):
        client = await cls.get_client()
        if not client:
            return
        try:
            await client.delete(key)
        except Exception as e:
            logger.warning(f"⚠️ Redis delete failed for {key}: {e}")

    @classmethod
    async def get_cached(cls, key: str) -> Optional[dict]:
        """
        Get cached JSON value from Redis
        Returns parsed dict or None if cache miss/error
        """
        cached = await cls.get_value(key)
        if cached:
            logger.debug(f"🎯 Cache HIT: {key}")
            return json.loads(cached)
        logger.debug(f"❌ Cache MISS: {key}")
        return None

    @classmethod
    async def set_cached(cls, key: str, value: Any, ttl_seconds: int = 10):
        """
        Store JSON value in Redis with TTL
        Accepts Pydantic models, dicts, or any JSON-serializable object
        """
        if hasattr(value, 'model_dump'):
            value = value.model_dump()

        serialized = json.dumps(value, default=str)
        if await cls.set_value(key, serialized, ttl_seconds):
            logger.debug(f"💾 Cache SET: {key} (TTL: {ttl_seconds}s)")

    @classmethod
    async def close(cls):
        """Close Redis connection"""
        if cls._instance:
            await cls._instance.close()
            cls._instance = None
            logger.info("Redis connection closed")


async def get_redis() -> Optional[Redis]:
    """Dependency to get Redis client (for health checks, etc.)"""
    return await RedisClient.get_client()
