"""User profile and search API routes."""

from fastapi import APIRouter, Query

from src.api.deps import Accounts, CallerId
from src.api.middleware.error_handler import AuthenticationError
from src.core.config import get_settings
from src.schemas.user import (
    SearchUsersResponse,
    UpdateFlagsRequest,
    UpdateFlagsResponse,
    UpdateProfileRequest,
    UserEnvelope,
)

router = APIRouter(tags=["users"])


@router.get(
    "/user",
    response_model=UserEnvelope,
    summary="Get current user's profile",
    description="Returns the caller's profile, served from cache when possible.",
)
async def get_my_profile(caller_id: CallerId, accounts: Accounts) -> UserEnvelope:
    """Get the caller's profile.

    Raises:
        AuthenticationError: 401 if the caller has no identity.
        NotFoundError: 404 if the user does not exist.
    """
    profile = await accounts.get_profile(caller_id)
    return UserEnvelope(user=profile)


@router.put(
    "/user",
    response_model=UserEnvelope,
    summary="Update current user's profile",
    description="Partially update the caller's profile. followers/following are increments.",
)
async def update_my_profile(
    data: UpdateProfileRequest,
    caller_id: CallerId,
    accounts: Accounts,
) -> UserEnvelope:
    """Update the caller's profile."""
    if not caller_id:
        raise AuthenticationError("User ID required")

    profile = await accounts.update_profile(caller_id, data)
    return UserEnvelope(user=profile)


@router.put(
    "/user/flags",
    response_model=UpdateFlagsResponse,
    summary="Update profile flags",
    description="Set the dating and/or content creator flags.",
)
async def update_my_flags(
    data: UpdateFlagsRequest,
    caller_id: CallerId,
    accounts: Accounts,
) -> UpdateFlagsResponse:
    """Update the caller's flags."""
    if not caller_id:
        raise AuthenticationError("User ID required")

    result = await accounts.update_flags(
        caller_id,
        dating=data.dating,
        content_creator=data.content_creator,
    )
    return UpdateFlagsResponse(**result)


@router.get(
    "/user/{user_id}",
    response_model=UserEnvelope,
    summary="Get a user's profile",
    description="Returns any user's public profile by ID.",
)
async def get_user_profile(user_id: str, accounts: Accounts) -> UserEnvelope:
    """Get a user's public profile by ID."""
    profile = await accounts.get_profile(user_id)
    return UserEnvelope(user=profile)


@router.get(
    "/search/users",
    response_model=SearchUsersResponse,
    summary="Search users",
    description="Case-insensitive search over username, name and email. q=~ lists everyone.",
)
async def search_users(
    accounts: Accounts,
    q: str = Query(default="", description="Search text, or ~ for all users"),
    page: int = Query(default=1, description="Page number starting at 1"),
    limit: int | None = Query(default=None, description="Page size (defaults to search_default_limit)"),
) -> SearchUsersResponse:
    """Search users ranked by follower count."""
    if limit is None:
        limit = get_settings().search_default_limit
    result = await accounts.search_users(q, page=page, limit=limit)
    return SearchUsersResponse(**result)
