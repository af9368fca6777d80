"""Shared Supabase client used by the catalog, usage and auth lookups.

``supabase.Client`` is not async; callers in async endpoints go through
``asyncio.to_thread``. One client is created per process on first use.
"""

import threading

from modcalc.core.config import get_settings
from modcalc.core.logging import logger
from supabase import Client, create_client

_supabase: Client | None = None
_client_lock = threading.Lock()


def get_supabase_client() -> Client:
    """Return the process-wide client, creating it under a lock on first use."""
    global _supabase
    if _supabase is None:
        with _client_lock:
            if _supabase is None:
                settings = get_settings()
                _supabase = create_client(settings.supabase_url, settings.supabase_key)
                logger.info(f"Supabase client created for {settings.supabase_url}")
    return _supabase


def reset_supabase_client() -> None:
    """Drop the cached client so the next call reconnects with current settings."""
    global _supabase
    with _client_lock:
        _supabase = None
