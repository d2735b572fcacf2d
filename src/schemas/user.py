"""User Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt


class UserProfile(BaseModel):
    """Public projection of a user. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="User unique identifier")
    email: str = Field(description="User email address")
    username: str = Field(description="Unique username")
    name: str | None = Field(default="", description="Display name")
    bio: str | None = Field(default="", description="Biography text")
    dob: str | None = Field(default="", description="Date of birth as entered by the user")
    profile_img_url: str | None = Field(default="", description="Profile image URL")
    banner_img_url: str | None = Field(default="", description="Banner image URL")
    followers: int = Field(default=0, ge=0, description="Follower count")
    following: int = Field(default=0, ge=0, description="Following count")
    is_verified: bool = Field(default=False, description="Verified account flag")
    content_creator: bool = Field(default=False, description="Content creator flag")
    dating: bool = Field(default=False, description="Dating flag")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class UserEnvelope(BaseModel):
    """Single user wrapped under ``user``."""

    user: UserProfile


class ImagePayload(BaseModel):
    """Inline image upload: base64 bytes plus declared MIME type."""

    blob: str | None = Field(default=None, description="Base64-encoded image bytes")
    name: str | None = Field(default=None, description="File name to store the image under")
    type: str | None = Field(default=None, description="Declared MIME type, e.g. image/png")


class UpdateProfileRequest(BaseModel):
    """Partial profile update. Every field is optional; at least one is required.

    followers and following are increments added to the stored counts.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=50)
    name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None)
    profile_img_url: str | None = Field(default=None)
    banner_img_url: str | None = Field(default=None)
    profile_img_data: ImagePayload | None = Field(default=None)
    banner_img_data: ImagePayload | None = Field(default=None)
    followers: StrictInt | None = Field(default=None, description="Follower count increment")
    following: StrictInt | None = Field(default=None, description="Following count increment")

    def supplied_fields(self) -> dict[str, Any]:
        """Fields the caller actually sent with a non-null value."""
        return self.model_dump(exclude_none=True)


class UpdateFlagsRequest(BaseModel):
    """Flag update. Values are type-checked by the service so a non-boolean
    is reported as a validation error rather than coerced."""

    model_config = ConfigDict(populate_by_name=True)

    dating: Any = Field(default=None)
    content_creator: Any = Field(
        default=None,
        validation_alias=AliasChoices("content_creator", "contentCreator"),
    )


class UpdateFlagsResponse(BaseModel):
    """Result of a flag update."""

    message: str
    user: UserProfile


class SearchUsersResponse(BaseModel):
    """One page of search results."""

    model_config = ConfigDict(populate_by_name=True)

    users: list[UserProfile] = Field(default_factory=list)
    total: int = Field(description="Total number of matching users")
    total_pages: int = Field(serialization_alias="totalPages", description="ceil(total / limit)")
    page: int = Field(description="Current page, starting at 1")
    limit: int = Field(description="Page size")
