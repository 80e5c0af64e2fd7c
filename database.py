"""
Supabase client management.
Thread-safe lazy singleton; repositories receive the client through dependencies.
"""
import logging
import threading
from typing import Optional

from supabase import create_client, Client

from config import settings
from utils.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Lazily creates and caches the service-side Supabase client."""

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        # Double-checked locking pattern for thread-safe singleton
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._client = None
                    cls._instance = instance
        return cls._instance

    @property
    def client(self) -> Client:
        """Client authenticated with the service key (falls back to anon key)."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    logger.info(f"🔧 [DATABASE] Creating Supabase client for {settings.supabase_url[:50]}")
                    try:
                        self._client = create_client(settings.supabase_url, settings.service_key)
                    except Exception as e:
                        logger.error(f"❌ [DATABASE] Failed to create Supabase client: {e}")
                        raise UpstreamServiceError(f"Supabase client unavailable: {e}", code="client_init") from e
                    logger.info("✅ [DATABASE] Supabase client created")
        return self._client

    def reset(self) -> None:
        """Drop the cached client so the next access reconnects."""
        with self._lock:
            self._client = None


db = SupabaseClient()


def get_supabase_client() -> Client:
    """FastAPI dependency returning the shared Supabase client."""
    return db.client


def get_optional_supabase_client() -> Optional[Client]:
    """Return the client, or None when it cannot be created (used by best-effort sinks)."""
    try:
        return db.client
    except Exception as e:
        logger.warning(f"⚠️ [DATABASE] Supabase unavailable: {e}")
        return None
