"""User model type definitions for database operations."""

from typing import TypedDict

# Every column except password_hash. Used for all reads that leave the
# service and for the cached profile snapshot.
PUBLIC_FIELDS: tuple[str, ...] = (
    "user_id",
    "email",
    "username",
    "name",
    "bio",
    "dob",
    "profile_img_url",
    "banner_img_url",
    "followers",
    "following",
    "is_verified",
    "content_creator",
    "dating",
    "created_at",
    "updated_at",
)

PUBLIC_COLUMNS = ",".join(PUBLIC_FIELDS)


class User(TypedDict):
    """Users table row representation.

    Maps directly to the database schema. email and username carry
    unique constraints in the store.
    """

    user_id: str
    email: str
    username: str
    password_hash: str
    name: str
    bio: str
    dob: str
    profile_img_url: str
    banner_img_url: str
    followers: int
    following: int
    is_verified: bool
    content_creator: bool
    dating: bool
    created_at: str
    updated_at: str


class UserCreate(TypedDict, total=False):
    """Data written on registration."""

    user_id: str
    email: str
    username: str
    password_hash: str
    name: str
    bio: str
    dob: str
    profile_img_url: str
    banner_img_url: str
    followers: int
    following: int
    is_verified: bool
    content_creator: bool
    dating: bool
    created_at: str
    updated_at: str


class UserChanges(TypedDict, total=False):
    """Columns an update may touch. All optional for partial updates."""

    email: str
    username: str
    password_hash: str
    name: str
    bio: str
    profile_img_url: str
    banner_img_url: str
    followers: int
    following: int
    content_creator: bool
    dating: bool
    updated_at: str


def to_public(record: User | dict) -> dict:
    """Strip a row down to its public projection."""
    return {field: record[field] for field in PUBLIC_FIELDS if field in record}
