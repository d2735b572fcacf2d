"""Password hashing and token issuing."""

import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from src.core.config import get_settings

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a freshly generated bcrypt salt.

    Args:
        password: Plain text password.

    Returns:
        str: The bcrypt hash, safe to store.
    """
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash.

    A missing or malformed stored hash never verifies.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


@lru_cache
def dummy_password_hash() -> str:
    """Throwaway hash verified when no account matches a login email."""
    return hash_password(secrets.token_urlsafe(16))


def _create_token(
    user_id: str,
    secret: str,
    expires_delta: timedelta,
    token_type: str,
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str) -> str:
    """Issue a short-lived access token bound to a user ID."""
    settings = get_settings()
    return _create_token(
        user_id,
        settings.jwt_access_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
        ACCESS_TOKEN_TYPE,
    )


def create_refresh_token(user_id: str) -> str:
    """Issue a longer-lived refresh token bound to a user ID."""
    settings = get_settings()
    return _create_token(
        user_id,
        settings.jwt_refresh_secret,
        timedelta(days=settings.refresh_token_expire_days),
        REFRESH_TOKEN_TYPE,
    )


def create_token_pair(user_id: str) -> dict[str, str]:
    """Issue both tokens for a user.

    Returns:
        dict: access_token and refresh_token.
    """
    return {
        "access_token": create_access_token(user_id),
        "refresh_token": create_refresh_token(user_id),
    }
