"""Supabase client shared by the record store and the Supabase cache backends."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _client_for(url: str, key: str) -> Optional[Client]:
    try:
        return create_client(url, key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client for {url}: {e}")
        return None


def get_supabase_client(cfg: Optional[Settings] = None) -> Optional[Client]:
    """Client for the project named by ``cfg`` (module settings when omitted).

    One client is kept per URL/key pair. None means the engine runs without
    Supabase; no connection is attempted here, so queries may still fail later.
    """
    cfg = cfg or default_settings
    if not cfg.supabase_url or not cfg.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None
    return _client_for(cfg.supabase_url, cfg.supabase_key)
