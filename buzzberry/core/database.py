"""
Supabase client access for the creator store
"""

from typing import Optional
from supabase import create_client, Client
from .config import Config


_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get or create the shared Supabase client.

    The client is built lazily from Config on first use so that importing
    buzzberry never requires credentials.

    Returns:
        Supabase client instance

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(
            Config.SUPABASE_URL,
            Config.SUPABASE_SERVICE_KEY
        )

    return _supabase_client


def creators_table(client: Optional[Client] = None, table_name: Optional[str] = None):
    """Return a fresh query builder for the creator records table."""
    db = client if client is not None else get_supabase_client()
    return db.table(table_name or Config.CREATORS_TABLE)


def reset_supabase_client():
    """Drop the cached client so the next call rebuilds it (tests, key rotation)."""
    global _supabase_client
    _supabase_client = None
