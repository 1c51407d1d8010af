from __future__ import annotations

from supabase import Client, create_client

from filterchain.infrastructure.config.settings import Settings

# Simple reusable singleton client getter for storage
_CLIENT_SINGLETON: Client | None = None


def get_supabase_client(settings: Settings) -> Client | None:
    """Return a shared Supabase client, or None when remote storage is off."""
    global _CLIENT_SINGLETON
    if settings.supabase_disabled or not settings.supabase_url or not settings.supabase_key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(settings.supabase_url, settings.supabase_key)
    return _CLIENT_SINGLETON
