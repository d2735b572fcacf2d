"""Database model type definitions."""

from src.models.user import PUBLIC_COLUMNS, PUBLIC_FIELDS, User, UserChanges, UserCreate, to_public

__all__ = [
    "PUBLIC_COLUMNS",
    "PUBLIC_FIELDS",
    "User",
    "UserChanges",
    "UserCreate",
    "to_public",
]
