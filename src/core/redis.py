"""Redis client construction for the profile cache."""

import logging

from redis.asyncio import Redis

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings | None = None) -> Redis:
    """Create an asyncio Redis client from the configured URL.

    The connection is lazy: nothing is opened until the first command, so
    the service starts even when Redis is down and the profile cache simply
    reports failures until it comes back.

    Args:
        settings: Optional settings override (defaults to cached settings).

    Returns:
        Redis: Client with string responses.
    """
    settings = settings or get_settings()
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )


async def close_redis_client(client: Redis) -> None:
    """Close the Redis client's connection pool."""
    try:
        await client.aclose()
    except Exception as e:
        logger.warning("Error closing Redis client: %s", e)
