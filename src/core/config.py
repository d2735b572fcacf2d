"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="accounts-service", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3002, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3001",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase (user store)
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    users_table: str = Field(default="users", description="Table holding user records")

    # Redis (profile cache)
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    profile_cache_ttl: int = Field(default=3600, description="Profile cache TTL in seconds")

    # Tokens
    jwt_access_secret: str = Field(..., description="Secret used to sign access tokens")
    jwt_refresh_secret: str = Field(..., description="Secret used to sign refresh tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=1440, description="Access token lifetime (1 day)")
    refresh_token_expire_days: int = Field(default=7, description="Refresh token lifetime in days")

    # Refresh cookie
    refresh_cookie_name: str = Field(default="refreshToken", description="Refresh token cookie name")
    refresh_cookie_secure: bool = Field(default=False, description="Use secure cookies (HTTPS only)")

    # Caller identity injected by the API gateway
    identity_header: str = Field(default="X-User-ID", description="Header carrying the caller's user ID")

    # Dropbox (image uploads)
    dropbox_app_key: str = Field(default="", description="Dropbox app key")
    dropbox_app_secret: str = Field(default="", description="Dropbox app secret")
    dropbox_refresh_token: str = Field(default="", description="Long-lived Dropbox refresh token")
    dropbox_upload_folder: str = Field(default="/profile-images", description="Dropbox folder for uploads")
    upload_timeout_seconds: float = Field(default=30.0, description="Timeout for Dropbox HTTP calls")

    # Request limits
    max_request_body_size: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum request body size in bytes (base64 images included)",
    )

    # Search
    search_default_limit: int = Field(default=20, description="Default page size for user search")
    search_max_limit: int = Field(default=100, description="Maximum page size for user search")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def refresh_cookie_max_age(self) -> int:
        """Refresh cookie lifetime in seconds, matching the refresh token."""
        return self.refresh_token_expire_days * 24 * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
