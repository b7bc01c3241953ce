"""Shared async Redis connection for chat fan-out between API instances."""
import logging

from redis.asyncio import Redis, from_url

from repochat.config import settings

logger = logging.getLogger(__name__)

_redis: Redis | None = None


async def get_redis() -> Redis:
    """Return the process-wide client, connecting on first use.

    Raises the connection error when Redis is unreachable; callers decide
    whether to run without it.
    """
    global _redis
    if _redis is None:
        client = from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await client.ping()
        except Exception:
            logger.warning("Redis unavailable at %s", settings.REDIS_URL)
            await client.aclose()
            raise
        logger.info("Redis connected: %s", settings.REDIS_URL)
        _redis = client
    return _redis


async def close_redis():
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
