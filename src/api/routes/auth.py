"""Authentication API routes."""

from fastapi import APIRouter, Request, Response, status

from src.api.deps import Accounts, CallerId, get_refresh_cookie, set_refresh_cookie
from src.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
)
from src.schemas.common import MessageResponse

router = APIRouter(tags=["auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create an account and return access/refresh tokens with the new profile.",
)
async def register(data: RegisterRequest, response: Response, accounts: Accounts) -> AuthResponse:
    """Register a new user.

    The refresh token is returned in the body and also set as an HttpOnly
    cookie for browser clients.

    Args:
        data: Registration fields.
        response: Response used to set the refresh cookie.
        accounts: Account service.

    Returns:
        AuthResponse: Tokens and the created profile.
    """
    result = await accounts.register(
        email=data.email,
        username=data.username,
        password=data.password,
        name=data.name,
        bio=data.bio,
        dob=data.dob,
        profile_img_url=data.profile_img_url,
    )
    set_refresh_cookie(response, result["refresh_token"])
    return AuthResponse(**result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login user",
    description="Authenticate with email and password. Returns fresh tokens and the profile.",
)
async def login(data: LoginRequest, response: Response, accounts: Accounts) -> AuthResponse:
    """Login with email and password.

    Unknown email and wrong password produce the same 401.
    """
    result = await accounts.login(email=data.email, password=data.password)
    set_refresh_cookie(response, result["refresh_token"])
    return AuthResponse(**result)


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh tokens",
    description="Exchange a refresh token (body or cookie) for a new token pair.",
)
async def refresh(
    request: Request,
    response: Response,
    accounts: Accounts,
    data: RefreshRequest | None = None,
) -> TokenPair:
    """Issue a new token pair from a refresh token."""
    token = (data.refresh_token if data else None) or get_refresh_cookie(request)
    result = await accounts.refresh(token)
    set_refresh_cookie(response, result["refresh_token"])
    return TokenPair(**result)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change the caller's password after verifying the current one.",
)
async def change_password(
    data: ChangePasswordRequest,
    caller_id: CallerId,
    accounts: Accounts,
) -> MessageResponse:
    """Change the caller's password."""
    result = await accounts.change_password(
        user_id=caller_id,
        current_password=data.current_password,
        new_password=data.new_password,
    )
    return MessageResponse(**result)
