"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-for-unit-tests-0123456789")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-for-unit-tests-0123456789")
os.environ.setdefault("DROPBOX_APP_KEY", "test-app-key")
os.environ.setdefault("DROPBOX_APP_SECRET", "test-app-secret")
os.environ.setdefault("DROPBOX_REFRESH_TOKEN", "test-dropbox-refresh-token")

from src.services.account_service import AccountService  # noqa: E402
from src.services.image_upload import DropboxUploader  # noqa: E402
from src.services.profile_cache import ProfileCache  # noqa: E402
from src.services.user_store import MATCH_ALL_QUERY, DuplicateRecordError  # noqa: E402

TEST_ACCESS_SECRET = os.environ["JWT_ACCESS_SECRET"]
TEST_REFRESH_SECRET = os.environ["JWT_REFRESH_SECRET"]


class InMemoryUserStore:
    """Dict-backed stand-in for UserStore with the same async interface.

    Unique constraints on user_id, email and username are enforced on
    insert and update, mirroring the table.
    """

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.get_by_id_calls = 0
        self.search_calls = 0
        self.healthy = True

    @staticmethod
    def _project(row: dict[str, Any] | None, columns: str) -> dict[str, Any] | None:
        if row is None:
            return None
        if columns == "*":
            return dict(row)
        wanted = [c.strip() for c in columns.split(",")]
        return {c: row[c] for c in wanted if c in row}

    def _check_unique(self, record: dict[str, Any], exclude: str | None = None) -> None:
        for user_id, row in self.rows.items():
            if user_id == exclude:
                continue
            for column in ("user_id", "email", "username"):
                if column in record and row.get(column) == record[column]:
                    raise DuplicateRecordError(f"duplicate key value violates unique constraint on {column}")

    async def get_by_id(self, user_id: str, columns: str = "*") -> dict[str, Any] | None:
        self.get_by_id_calls += 1
        return self._project(self.rows.get(str(user_id)), columns)

    async def get_by_email(self, email: str, columns: str = "*") -> dict[str, Any] | None:
        row = next((r for r in self.rows.values() if r["email"] == email), None)
        return self._project(row, columns)

    async def get_by_username(self, username: str, columns: str = "*") -> dict[str, Any] | None:
        row = next((r for r in self.rows.values() if r["username"] == username), None)
        return self._project(row, columns)

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        self._check_unique(record)
        self.rows[record["user_id"]] = dict(record)
        return dict(record)

    async def update(self, user_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        row = self.rows.get(str(user_id))
        if row is None:
            return None
        self._check_unique(changes, exclude=str(user_id))
        row.update(changes)
        return dict(row)

    async def search(self, query: str, offset: int, limit: int) -> tuple[list[dict[str, Any]], int]:
        self.search_calls += 1
        rows = list(self.rows.values())
        if query != MATCH_ALL_QUERY:
            needle = query.lower()
            rows = [
                r for r in rows
                if any(needle in (r.get(f) or "").lower() for f in ("username", "name", "email"))
            ]
        rows.sort(key=lambda r: r.get("followers", 0), reverse=True)
        return [dict(r) for r in rows[offset:offset + limit]], len(rows)

    async def ping(self) -> dict[str, Any]:
        if self.healthy:
            return {"healthy": True}
        return {"healthy": False, "error": "connection refused"}


class InMemoryRedis:
    """Minimal asyncio Redis stand-in: get, set with expiry, delete, ping.

    Set ``failing = True`` to make every command raise a connection error.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}
        self.failing = False

    def _check(self) -> None:
        if self.failing:
            raise RedisConnectionError("Connection refused")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.data[key] = value
        self.expiries[key] = ex
        return True

    async def delete(self, key: str) -> int:
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        return None


@pytest.fixture
def user_store() -> InMemoryUserStore:
    """Provide an empty in-memory user store."""
    return InMemoryUserStore()


@pytest.fixture
def redis_client() -> InMemoryRedis:
    """Provide an in-memory Redis stand-in."""
    return InMemoryRedis()


@pytest.fixture
def profile_cache(redis_client: InMemoryRedis) -> ProfileCache:
    """Provide a ProfileCache over the in-memory Redis."""
    return ProfileCache(redis_client, ttl_seconds=3600)  # type: ignore[arg-type]


@pytest.fixture
def uploader() -> MagicMock:
    """Provide a mocked Dropbox uploader that succeeds by default."""
    mock_uploader = MagicMock(spec=DropboxUploader)
    mock_uploader.get_access_token = AsyncMock(return_value="dropbox-access-token")
    mock_uploader.upload = AsyncMock(return_value="https://dl.dropboxusercontent.com/s/abc/avatar.png?raw=1")
    return mock_uploader


@pytest.fixture
def account_service(
    user_store: InMemoryUserStore,
    profile_cache: ProfileCache,
    uploader: MagicMock,
) -> AccountService:
    """Provide an AccountService wired to in-memory collaborators."""
    return AccountService(store=user_store, cache=profile_cache, uploader=uploader)  # type: ignore[arg-type]


@pytest.fixture
def client(
    user_store: InMemoryUserStore,
    profile_cache: ProfileCache,
    redis_client: InMemoryRedis,
    uploader: MagicMock,
) -> Generator[TestClient, None, None]:
    """Provide a test client whose app.state holds in-memory collaborators.

    The lifespan still runs, but with the Supabase and Redis factories
    patched so no network clients are created.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with (
        patch("src.main.create_supabase_client", return_value=MagicMock()),
        patch("src.main.create_redis_client", return_value=redis_client),
    ):
        with TestClient(app) as test_client:
            app.state.user_store = user_store
            app.state.profile_cache = profile_cache
            app.state.image_uploader = uploader
            yield test_client
