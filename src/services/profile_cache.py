"""Redis-backed read-through cache for public user profiles."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class CacheResult:
    """Outcome of a cache operation.

    A failed operation carries the error instead of raising it; callers
    decide how to degrade (a failed get is a miss, a failed set or delete
    is a no-op).
    """

    ok: bool
    value: dict[str, Any] | None = None
    error: str | None = None

    @property
    def hit(self) -> bool:
        """True when the lookup succeeded and found a snapshot."""
        return self.ok and self.value is not None

    @classmethod
    def success(cls, value: dict[str, Any] | None = None) -> CacheResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception | str) -> CacheResult:
        return cls(ok=False, error=str(error))


def profile_key(user_id: str) -> str:
    """Cache key for a user's profile snapshot."""
    return f"user:{user_id}"


class ProfileCache:
    """Profile snapshots keyed by ``user:<id>`` with a fixed TTL."""

    def __init__(self, client: Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        """Initialize the profile cache.

        Args:
            client: Asyncio Redis client created at application startup.
            ttl_seconds: Lifetime of each cached snapshot.
        """
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def get(self, user_id: str) -> CacheResult:
        """Look up a cached profile snapshot.

        Args:
            user_id: The user's ID.

        Returns:
            CacheResult: value is the snapshot on a hit, None on a miss.
        """
        key = profile_key(user_id)
        try:
            raw = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.warning("Profile cache read failed for %s: %s", key, e)
            return CacheResult.failure(e)

        if raw is None:
            logger.debug("Cache miss for key %s", key)
            return CacheResult.success()

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            return CacheResult.failure(e)

        if not isinstance(value, dict):
            return CacheResult.failure(f"unexpected cache payload type {type(value).__name__}")

        logger.debug("Cache hit for key %s", key)
        return CacheResult.success(value)

    async def set(self, user_id: str, profile: dict[str, Any]) -> CacheResult:
        """Store a profile snapshot with the configured TTL."""
        key = profile_key(user_id)
        try:
            payload = json.dumps(profile, default=str)
            await self.client.set(key, payload, ex=self.ttl_seconds)
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning("Profile cache write failed for %s: %s", key, e)
            return CacheResult.failure(e)

        logger.debug("Cached profile for key %s (expires in %ds)", key, self.ttl_seconds)
        return CacheResult.success()

    async def delete(self, user_id: str) -> CacheResult:
        """Invalidate a user's snapshot."""
        key = profile_key(user_id)
        try:
            await self.client.delete(key)
        except (RedisError, OSError) as e:
            logger.warning("Profile cache invalidation failed for %s: %s", key, e)
            return CacheResult.failure(e)
        return CacheResult.success()

    async def ping(self) -> dict[str, Any]:
        """Check that Redis answers.

        Returns:
            dict: Connection status with 'healthy' boolean and optional 'error' message.
        """
        try:
            await self.client.ping()
            return {"healthy": True}
        except (RedisError, OSError) as e:
            return {"healthy": False, "error": str(e)}
