"""Supabase client used to verify user access tokens."""

import logging
from functools import lru_cache
from typing import Optional

from supabase import create_client, Client
from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - token checks may still fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


def get_user_id_for_token(token: str) -> Optional[str]:
    """Resolve a Supabase access token to its user id, or None when it is not valid."""
    client = get_supabase_client()
    if client is None:
        raise RuntimeError("Supabase is not configured; cannot verify access tokens.")
    response = client.auth.get_user(token)
    user = getattr(response, "user", None)
    if user is None:
        return None
    return str(user.id)
