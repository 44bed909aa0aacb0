"""
Store adapters
"""
from functools import lru_cache

from loguru import logger

from clubdesk.config import get_supabase_config

from .base import ClubStore
from .memory import InMemoryClubStore


@lru_cache()
def get_store() -> ClubStore:
    """Supabase when configured, otherwise an empty in-memory store"""
    config = get_supabase_config()
    if config.supabase_url and config.supabase_key:
        from .supabase_store import SupabaseClubStore

        logger.info("Using Supabase store")
        return SupabaseClubStore()

    logger.warning("SUPABASE_URL / SUPABASE_KEY not set, using in-memory store")
    return InMemoryClubStore()


__all__ = ["ClubStore", "InMemoryClubStore", "get_store"]
