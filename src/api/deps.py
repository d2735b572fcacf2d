"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, Request, Response

from src.api.middleware.auth import AuthError, decode_token
from src.core.config import get_settings
from src.services.account_service import AccountService


def get_account_service(request: Request) -> AccountService:
    """Build the account service from collaborators created at startup.

    The store, cache and uploader live on app.state; the lifespan owns
    their lifecycle.
    """
    state = request.app.state
    return AccountService(
        store=state.user_store,
        cache=state.profile_cache,
        uploader=state.image_uploader,
        max_page_size=get_settings().search_max_limit,
    )


async def get_caller_id(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Resolve the caller's user ID.

    The API gateway authenticates requests and injects the user ID header.
    Without it, a valid bearer access token is accepted instead. Returns
    None when neither is present; the service decides whether that is an
    error.

    Args:
        request: FastAPI request object.
        authorization: Optional Authorization header value.

    Returns:
        str | None: The caller's user ID.
    """
    header_value = request.headers.get(get_settings().identity_header)
    if header_value:
        return header_value.strip()

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            try:
                payload = decode_token(parts[1])
            except AuthError:
                return None
            return payload.user_id or payload.sub

    return None


def get_refresh_cookie_config() -> dict:
    """Get refresh cookie configuration from settings."""
    settings = get_settings()
    # SameSite=None requires Secure=True; fall back to Lax for plain HTTP
    samesite = "none" if settings.refresh_cookie_secure else "lax"
    return {
        "key": settings.refresh_cookie_name,
        "max_age": settings.refresh_cookie_max_age,
        "httponly": True,
        "secure": settings.refresh_cookie_secure,
        "samesite": samesite,
        "path": "/",
    }


def set_refresh_cookie(response: Response, token: str) -> None:
    """Set the HttpOnly refresh token cookie on a response.

    Args:
        response: FastAPI response object.
        token: The refresh token to set.
    """
    config = get_refresh_cookie_config()
    response.set_cookie(
        key=config["key"],
        value=token,
        max_age=config["max_age"],
        httponly=config["httponly"],
        secure=config["secure"],
        samesite=config["samesite"],
        path=config["path"],
    )


def get_refresh_cookie(request: Request) -> str | None:
    """Read the refresh token cookie, if any."""
    return request.cookies.get(get_refresh_cookie_config()["key"])


# Type aliases for cleaner dependency injection
Accounts = Annotated[AccountService, Depends(get_account_service)]
CallerId = Annotated[str | None, Depends(get_caller_id)]
