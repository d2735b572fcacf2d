"""Account business logic: registration, credentials, profiles, search."""

import base64
import binascii
import logging
import math
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from src.api.middleware.auth import AuthError, decode_token
from src.api.middleware.error_handler import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from src.core.security import (
    REFRESH_TOKEN_TYPE,
    create_token_pair,
    dummy_password_hash,
    hash_password,
    verify_password,
)
from src.models.user import UserChanges, UserCreate, to_public
from src.schemas.user import ImagePayload, UpdateProfileRequest
from src.services.image_upload import BANNER_IMAGE_TYPES, PROFILE_IMAGE_TYPES, DropboxUploader
from src.services.profile_cache import ProfileCache
from src.services.user_store import LIKE_WILDCARD, MATCH_ALL_QUERY, DuplicateRecordError, UserStore

logger = logging.getLogger(__name__)

# Same message for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid credentials"

DEFAULT_PAGE_SIZE = 20


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AccountService:
    """Orchestrates the user store, profile cache and image uploader.

    Profile reads are cache-aside: the cache is consulted first, the store
    on a miss, and the cache populated afterwards. Every write invalidates
    the cached snapshot. Cache faults never fail a request.
    """

    def __init__(
        self,
        store: UserStore,
        cache: ProfileCache,
        uploader: DropboxUploader,
        max_page_size: int = 100,
    ) -> None:
        """Initialize the service with its collaborators.

        Args:
            store: User record store.
            cache: Profile snapshot cache.
            uploader: Image upload collaborator.
            max_page_size: Upper bound on search page size.
        """
        self.store = store
        self.cache = cache
        self.uploader = uploader
        self.max_page_size = max_page_size

    async def register(
        self,
        email: str | None,
        username: str | None,
        password: str | None,
        name: str | None = None,
        bio: str | None = None,
        dob: str | None = None,
        profile_img_url: str | None = None,
    ) -> dict[str, Any]:
        """Create a new account and sign the user in.

        Args:
            email: Unique email address.
            username: Unique username.
            password: Plain text password.
            name: Optional display name.
            bio: Optional biography.
            dob: Optional date of birth.
            profile_img_url: Optional profile image URL.

        Returns:
            dict: access_token, refresh_token and the public user profile.

        Raises:
            ValidationError: If email, username or password is missing.
            ConflictError: If the email or username is already registered.
        """
        if not email or not username or not password:
            raise ValidationError("Email, username, and password are required")

        # Fast path only; the store's unique constraints are authoritative
        if await self.store.get_by_email(email, columns="user_id") or await self.store.get_by_username(
            username, columns="user_id"
        ):
            raise ConflictError("Email or username already exists")

        now = _now()
        record: UserCreate = {
            "user_id": str(uuid4()),
            "email": email,
            "username": username,
            "password_hash": hash_password(password),
            "name": name or "",
            "bio": bio or "",
            "dob": dob or "",
            "profile_img_url": profile_img_url or "",
            "banner_img_url": "",
            "followers": 0,
            "following": 0,
            "is_verified": False,
            "content_creator": False,
            "dating": False,
            "created_at": now,
            "updated_at": now,
        }

        try:
            created = await self.store.insert(record)
        except DuplicateRecordError as e:
            raise ConflictError("Email or username already exists") from e

        user_id = record["user_id"]
        logger.info("User registered: %s", user_id)

        return {**create_token_pair(user_id), "user": to_public(created)}

    async def login(self, email: str | None, password: str | None) -> dict[str, Any]:
        """Verify credentials and issue fresh tokens.

        Raises:
            ValidationError: If email or password is missing.
            AuthenticationError: If the email is unknown or the password is
                wrong. Both cases look identical to the caller.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self.store.get_by_email(email)
        # Unknown emails still pay for one bcrypt check
        stored_hash = user.get("password_hash", "") if user else dummy_password_hash()
        if not verify_password(password, stored_hash) or not user:
            logger.warning("Failed login attempt")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("User logged in: %s", user["user_id"])
        return {**create_token_pair(user["user_id"]), "user": to_public(user)}

    async def refresh(self, refresh_token: str | None) -> dict[str, str]:
        """Exchange a refresh token for a new token pair.

        Raises:
            AuthenticationError: If the token is missing, invalid, expired,
                or belongs to a user that no longer exists.
        """
        if not refresh_token:
            raise AuthenticationError("Refresh token required")

        try:
            payload = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        except AuthError as e:
            raise AuthenticationError(e.message) from e

        user_id = payload.user_id or payload.sub
        if not await self.store.get_by_id(user_id, columns="user_id"):
            raise AuthenticationError("Invalid refresh token")

        return create_token_pair(user_id)

    async def get_profile(self, user_id: str | None) -> dict[str, Any]:
        """Get a user's public profile through the cache.

        Args:
            user_id: The user's ID; None when the caller has no identity.

        Returns:
            dict: The public profile.

        Raises:
            AuthenticationError: If no user ID is available.
            NotFoundError: If the user does not exist.
        """
        if not user_id:
            raise AuthenticationError("User ID required")

        cached = await self.cache.get(user_id)
        if cached.hit:
            return cached.value

        user = await self.store.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        profile = to_public(user)
        await self.cache.set(user_id, profile)
        return profile

    async def update_profile(self, user_id: str | None, data: UpdateProfileRequest) -> dict[str, Any]:
        """Apply a partial profile update.

        Scalar fields replace the stored values. followers and following are
        increments added to the stored counts (read-modify-write: concurrent
        increments to the same user can lose an update). Uploaded images
        replace the matching URL field, even if a plain URL was also sent.

        Raises:
            ValidationError: Missing identity, empty update, bad image, or a
                count that would go negative.
            NotFoundError: If the user does not exist.
            UploadError: If an image could not be uploaded.
            ConflictError: If the new email or username is taken.
        """
        if not user_id:
            raise ValidationError("User ID required")

        supplied = data.supplied_fields()
        if not supplied:
            raise ValidationError("At least one field must be provided for update")

        # Validate images before touching the store or the network
        images: dict[str, tuple[bytes, str]] = {}
        if data.profile_img_data is not None:
            images["profile_img_url"] = self._decode_image(data.profile_img_data, PROFILE_IMAGE_TYPES, "profile")
        if data.banner_img_data is not None:
            images["banner_img_url"] = self._decode_image(data.banner_img_data, BANNER_IMAGE_TYPES, "banner")

        user = await self.store.get_by_id(user_id, columns="user_id,followers,following")
        if not user:
            raise NotFoundError("User not found")

        changes: UserChanges = {}
        for field in ("email", "username", "name", "bio", "profile_img_url", "banner_img_url"):
            if field in supplied:
                changes[field] = supplied[field]

        for field in ("followers", "following"):
            if field in supplied:
                new_count = (user.get(field) or 0) + supplied[field]
                if new_count < 0:
                    raise ValidationError(f"{field} cannot be negative")
                changes[field] = new_count

        if images:
            changes.update(await self._upload_images(user_id, images))

        changes["updated_at"] = _now()

        try:
            updated = await self.store.update(user_id, changes)
        except DuplicateRecordError as e:
            raise ConflictError("Email or username already exists") from e

        if not updated:
            raise NotFoundError("User not found")

        await self._invalidate(user_id)
        return to_public(updated)

    async def change_password(
        self,
        user_id: str | None,
        current_password: str | None,
        new_password: str | None,
    ) -> dict[str, str]:
        """Replace the password after verifying the current one.

        Issued tokens stay valid; there is no revocation.

        Raises:
            ValidationError: If any input is missing.
            NotFoundError: If the user does not exist.
            AuthenticationError: If the current password is wrong.
        """
        if not user_id or not current_password or not new_password:
            raise ValidationError("User ID, current password, and new password are required")

        user = await self.store.get_by_id(user_id, columns="user_id,password_hash")
        if not user:
            raise NotFoundError("User not found")

        if not verify_password(current_password, user.get("password_hash", "")):
            raise AuthenticationError("Current password is incorrect")

        updated = await self.store.update(
            user_id,
            {"password_hash": hash_password(new_password), "updated_at": _now()},
        )
        if not updated:
            raise NotFoundError("User not found")

        # The snapshot carries updated_at
        await self._invalidate(user_id)
        logger.info("Password changed for user: %s", user_id)

        return {"message": "Password updated successfully"}

    async def update_flags(
        self,
        user_id: str | None,
        dating: Any = None,
        content_creator: Any = None,
    ) -> dict[str, Any]:
        """Set the dating and/or content creator flags.

        Raises:
            ValidationError: If neither flag is supplied or one is not a bool.
            NotFoundError: If the user does not exist.
        """
        if not user_id:
            raise ValidationError("User ID required")

        flags = {
            name: value
            for name, value in (("dating", dating), ("content_creator", content_creator))
            if value is not None
        }
        if not flags:
            raise ValidationError("At least one of dating or content_creator must be provided")

        for name, value in flags.items():
            if not isinstance(value, bool):
                raise ValidationError(f"{name} must be a boolean")

        if not await self.store.get_by_id(user_id, columns="user_id"):
            raise NotFoundError("User not found")

        changes: UserChanges = {**flags, "updated_at": _now()}
        updated = await self.store.update(user_id, changes)
        if not updated:
            raise NotFoundError("User not found")

        await self._invalidate(user_id)
        return {"message": "Flags updated successfully", "user": to_public(updated)}

    async def search_users(
        self,
        query: str | None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Search users, most followed first. Results are never cached.

        Args:
            query: Substring to match, or ``~`` to list everyone.
            page: Page number starting at 1.
            limit: Page size.

        Returns:
            dict: users, total, total_pages, page, limit.

        Raises:
            ValidationError: If the query is empty or paging is invalid.
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        if page < 1:
            raise ValidationError("page must be at least 1")
        if limit < 1 or limit > self.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self.max_page_size}")

        query = query.strip()
        if query != MATCH_ALL_QUERY and not query.replace(LIKE_WILDCARD, "").strip():
            raise ValidationError("Search query must contain searchable characters")
        offset = (page - 1) * limit
        rows, total = await self.store.search(query, offset, limit)

        return {
            "users": [to_public(row) for row in rows],
            "total": total,
            "total_pages": math.ceil(total / limit),
            "page": page,
            "limit": limit,
        }

    @staticmethod
    def _decode_image(payload: ImagePayload, allowed_types: frozenset[str], label: str) -> tuple[bytes, str]:
        if payload.type not in allowed_types:
            raise ValidationError(f"Invalid {label} image type")
        if not payload.blob or not payload.name:
            raise ValidationError(f"{label.capitalize()} image data requires blob and name")
        try:
            content = base64.b64decode(payload.blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"{label.capitalize()} image data is not valid base64") from e
        return content, payload.name

    async def _upload_images(self, user_id: str, images: dict[str, tuple[bytes, str]]) -> dict[str, str]:
        access_token = await self.uploader.get_access_token()
        if not access_token:
            raise UploadError("Failed to get upload access token")

        urls: dict[str, str] = {}
        for field, (content, filename) in images.items():
            url = await self.uploader.upload(content, filename, access_token)
            if not url:
                logger.error("Image upload failed for user %s (%s)", user_id, field)
                label = "profile" if field == "profile_img_url" else "banner"
                raise UploadError(f"Failed to upload {label} image")
            urls[field] = url
        return urls

    async def _invalidate(self, user_id: str) -> None:
        result = await self.cache.delete(user_id)
        if not result.ok:
            # Readers may see the old snapshot until the TTL runs out
            logger.warning("Stale profile possible for user %s: %s", user_id, result.error)
