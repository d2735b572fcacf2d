"""Authentication schemas for credentials, tokens and caller identity."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.schemas.user import UserProfile


class TokenPayload(BaseModel):
    """Claims carried by access and refresh tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's ID")
    user_id: str | None = Field(default=None, description="User ID (mirrors sub)")
    type: str = Field(description="Token type: access or refresh")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")


# Credential requests. Required fields are checked by the service so a
# missing field is reported the same way however the body was shaped.


class RegisterRequest(BaseModel):
    """Request schema for registration."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=50)
    password: str | None = Field(default=None, max_length=100)
    name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None)
    dob: str | None = Field(default=None, validation_alias=AliasChoices("dob", "DOB"))
    profile_img_url: str | None = Field(default=None)


class LoginRequest(BaseModel):
    """Request schema for login."""

    email: str | None = Field(default=None)
    password: str | None = Field(default=None)


class RefreshRequest(BaseModel):
    """Refresh token in the body. Browsers may send the cookie instead."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
    )


class ChangePasswordRequest(BaseModel):
    """Request schema for changing password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices("current_password", "currentPassword"),
    )
    new_password: str | None = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("new_password", "newPassword"),
    )


class TokenPair(BaseModel):
    """Access and refresh tokens."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class AuthResponse(TokenPair):
    """Tokens plus the caller's profile, returned by register and login."""

    user: UserProfile
