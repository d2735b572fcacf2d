"""Unit tests for FastAPI dependency injection functions."""

from unittest.mock import MagicMock

import pytest
from fastapi import Response
from starlette.requests import Request

from src.api.deps import (
    get_account_service,
    get_caller_id,
    get_refresh_cookie,
    get_refresh_cookie_config,
    set_refresh_cookie,
)
from src.core.security import create_access_token, create_refresh_token
from src.services.account_service import AccountService

USER_ID = "550e8400-e29b-41d4-a716-446655440000"


def make_request(headers: dict[str, str] | None = None, app: object | None = None) -> Request:
    """Build a bare Starlette request with the given headers."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {"type": "http", "method": "GET", "path": "/", "headers": raw_headers}
    if app is not None:
        scope["app"] = app
    return Request(scope)


class TestGetCallerId:
    """Tests for get_caller_id dependency."""

    @pytest.mark.asyncio
    async def test_reads_gateway_header(self) -> None:
        """Test the gateway-injected header wins."""
        request = make_request({"X-User-ID": USER_ID})

        assert await get_caller_id(request, None) == USER_ID

    @pytest.mark.asyncio
    async def test_header_preferred_over_bearer(self) -> None:
        """Test the header is used even if a token is also sent."""
        request = make_request({"X-User-ID": USER_ID})
        token = create_access_token("someone-else")

        assert await get_caller_id(request, f"Bearer {token}") == USER_ID

    @pytest.mark.asyncio
    async def test_falls_back_to_bearer_access_token(self) -> None:
        """Test a valid access token identifies the caller without the header."""
        token = create_access_token(USER_ID)

        assert await get_caller_id(make_request(), f"Bearer {token}") == USER_ID

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_identity(self) -> None:
        """Test a refresh token cannot stand in for an access token."""
        token = create_refresh_token(USER_ID)

        assert await get_caller_id(make_request(), f"Bearer {token}") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("authorization", [None, "", "Basic abc", "Bearer", "Bearer not-a-jwt"])
    async def test_no_identity(self, authorization: str | None) -> None:
        """Test missing or unusable credentials yield None."""
        assert await get_caller_id(make_request(), authorization) is None


class TestRefreshCookie:
    """Tests for refresh cookie helpers."""

    def test_cookie_config(self) -> None:
        """Test the cookie is HttpOnly and lives as long as the refresh token."""
        config = get_refresh_cookie_config()

        assert config["key"] == "refreshToken"
        assert config["httponly"] is True
        assert config["max_age"] == 7 * 24 * 60 * 60
        assert config["samesite"] == "lax"

    def test_set_refresh_cookie(self) -> None:
        """Test the cookie header is written."""
        response = Response()

        set_refresh_cookie(response, "token-value")

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("refreshToken=token-value")
        assert "HttpOnly" in cookie

    def test_get_refresh_cookie(self) -> None:
        """Test the cookie is read back from a request."""
        request = make_request({"Cookie": "refreshToken=abc"})

        assert get_refresh_cookie(request) == "abc"
        assert get_refresh_cookie(make_request()) is None


class TestGetAccountService:
    """Tests for get_account_service dependency."""

    def test_builds_service_from_app_state(self) -> None:
        """Test the service is wired to the collaborators on app.state."""
        app = MagicMock()
        request = make_request(app=app)

        service = get_account_service(request)

        assert isinstance(service, AccountService)
        assert service.store is app.state.user_store
        assert service.cache is app.state.profile_cache
        assert service.uploader is app.state.image_uploader
        assert service.max_page_size == 100
