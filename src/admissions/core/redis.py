"""
Redis Configuration

Async Redis client shared by rate limiting.
"""

from redis.asyncio import Redis, from_url

from admissions.core.config import settings

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Initialize the Redis connection. Call on application startup."""
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()
    return redis_client


def get_redis_client() -> Redis | None:
    """Return the shared client, or None if Redis is unavailable."""
    return redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
