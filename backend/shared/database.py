"""
Supabase client for the journey, user and expense repositories.

All three repositories share one service-role client. Who may change a
journey is decided by the leader checks in the membership service, so
Row Level Security is not relied on, and the conditional token redeem
must be able to see every journey row.
"""

from typing import Optional
from supabase import create_client, Client

from .config import get_settings

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get the shared service-role client, creating it on first use.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    global _client

    if _client is None:
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "Supabase is not configured for the journey store. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        _client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _client


def reset_client_cache() -> None:
    """Drop the shared client so the next repository gets one built from current settings."""
    global _client
    _client = None
