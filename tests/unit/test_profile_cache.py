"""Unit tests for ProfileCache."""

import json

import pytest

from conftest import InMemoryRedis
from src.services.profile_cache import CacheResult, ProfileCache, profile_key

PROFILE = {"user_id": "u1", "username": "ada", "followers": 3}


class TestProfileCache:
    """Tests for the Redis-backed profile cache."""

    def test_profile_key(self) -> None:
        """Test keys are namespaced by user."""
        assert profile_key("u1") == "user:u1"

    @pytest.mark.asyncio
    async def test_miss(self, profile_cache: ProfileCache) -> None:
        """Test an absent key is a successful miss."""
        result = await profile_cache.get("u1")

        assert result.ok is True
        assert result.hit is False

    @pytest.mark.asyncio
    async def test_set_then_get(self, profile_cache: ProfileCache, redis_client: InMemoryRedis) -> None:
        """Test a stored snapshot is returned with the configured TTL."""
        await profile_cache.set("u1", PROFILE)

        result = await profile_cache.get("u1")

        assert result.hit is True
        assert result.value == PROFILE
        assert redis_client.expiries["user:u1"] == 3600

    @pytest.mark.asyncio
    async def test_delete(self, profile_cache: ProfileCache, redis_client: InMemoryRedis) -> None:
        """Test invalidation removes the key."""
        redis_client.data["user:u1"] = json.dumps(PROFILE)

        result = await profile_cache.delete("u1")

        assert result.ok is True
        assert "user:u1" not in redis_client.data

    @pytest.mark.asyncio
    async def test_outage_is_reported_not_raised(
        self, profile_cache: ProfileCache, redis_client: InMemoryRedis
    ) -> None:
        """Test every operation degrades to a failed result when Redis is down."""
        redis_client.failing = True

        for result in (
            await profile_cache.get("u1"),
            await profile_cache.set("u1", PROFILE),
            await profile_cache.delete("u1"),
        ):
            assert result.ok is False
            assert "Connection refused" in result.error

    @pytest.mark.asyncio
    async def test_non_object_payload_is_a_failure(
        self, profile_cache: ProfileCache, redis_client: InMemoryRedis
    ) -> None:
        """Test a snapshot that is not a JSON object is not served."""
        redis_client.data["user:u1"] = "[1, 2]"

        result = await profile_cache.get("u1")

        assert result.ok is False
        assert result.hit is False

    @pytest.mark.asyncio
    async def test_ping(self, profile_cache: ProfileCache, redis_client: InMemoryRedis) -> None:
        """Test ping reports health and errors."""
        assert await profile_cache.ping() == {"healthy": True}

        redis_client.failing = True
        status = await profile_cache.ping()

        assert status["healthy"] is False
        assert "error" in status

    def test_failure_result(self) -> None:
        """Test failure results carry the error text and no value."""
        result = CacheResult.failure(RuntimeError("boom"))

        assert result.ok is False
        assert result.value is None
        assert result.error == "boom"
