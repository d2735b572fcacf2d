"""JWT verification for access and refresh tokens."""

from enum import Enum
from typing import Any

import jwt

from src.core.config import get_settings
from src.core.security import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE
from src.schemas.auth import TokenPayload


class AuthErrorCode(str, Enum):
    """Authentication error codes."""

    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """Authentication error with specific error code.

    Raised when JWT validation fails for any reason.
    The error code indicates the specific failure reason.
    """

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        """Initialize authentication error.

        Args:
            message: Human-readable error description.
            code: Specific error code for programmatic handling.
        """
        self.message = message
        self.code = code
        super().__init__(message)


def _secret_for(token_type: str) -> str:
    settings = get_settings()
    if token_type == ACCESS_TOKEN_TYPE:
        return settings.jwt_access_secret
    if token_type == REFRESH_TOKEN_TYPE:
        return settings.jwt_refresh_secret
    raise AuthError(f"Unknown token type: {token_type}", AuthErrorCode.INVALID_TOKEN)


def decode_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> TokenPayload:
    """Decode and validate a token issued by this service.

    Access and refresh tokens are signed with different secrets and carry a
    ``type`` claim; a token of the wrong kind is rejected.

    Args:
        token: The JWT token string to decode.
        token_type: Expected token type (access or refresh).

    Returns:
        TokenPayload: Validated token payload.

    Raises:
        AuthError: If token is invalid, expired, or has wrong signature.
    """
    settings = get_settings()
    secret = _secret_for(token_type)

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require": ["exp", "iat", "sub"],
            },
        )

    except jwt.ExpiredSignatureError as e:
        raise AuthError(
            "Token has expired",
            AuthErrorCode.TOKEN_EXPIRED,
        ) from e

    except jwt.InvalidSignatureError as e:
        raise AuthError(
            "Invalid token signature",
            AuthErrorCode.INVALID_SIGNATURE,
        ) from e

    except jwt.MissingRequiredClaimError as e:
        raise AuthError(
            f"Token missing required claim: {e}",
            AuthErrorCode.INVALID_TOKEN,
        ) from e

    except jwt.PyJWTError as e:
        raise AuthError(
            f"Invalid token: {e}",
            AuthErrorCode.INVALID_TOKEN,
        ) from e

    if payload.get("type") != token_type:
        raise AuthError(
            f"Expected a {token_type} token",
            AuthErrorCode.INVALID_TOKEN,
        )

    return TokenPayload(
        sub=payload["sub"],
        user_id=payload.get("user_id"),
        type=payload["type"],
        exp=payload["exp"],
        iat=payload["iat"],
    )
