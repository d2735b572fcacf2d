"""Supabase client construction for the user store."""

from supabase import Client, create_client

from src.core.config import Settings, get_settings


def create_supabase_client(settings: Settings | None = None) -> Client:
    """Create a Supabase client for user store operations.

    Uses the secret key (sb_secret_) for backend operations, which bypasses
    RLS at the PostgREST level. Callers are trusted: the gateway has already
    authenticated the user before requests reach this service.

    The client is created once by the application lifespan and shared
    through app.state; do not call this per request.

    Args:
        settings: Optional settings override (defaults to cached settings).

    Returns:
        Client: Supabase client instance.
    """
    settings = settings or get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )
