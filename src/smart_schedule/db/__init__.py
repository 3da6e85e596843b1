"""Database clients and utilities."""

from .supabase import get_supabase_client, get_user_id_for_token

__all__ = ["get_supabase_client", "get_user_id_for_token"]
