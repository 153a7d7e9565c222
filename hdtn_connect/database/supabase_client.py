import logging
from typing import Optional

from supabase import AsyncClient, acreate_client
from hdtn_connect.config.settings import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide AsyncClient shared by the controller and every service."""

    _client: Optional[AsyncClient] = None

    @classmethod
    async def get_client(cls) -> Optional[AsyncClient]:
        """Return the shared client, or None when SUPABASE_URL / SUPABASE_ANON_KEY are missing."""
        if cls._client is None:
            if not settings.is_supabase_configured:
                logger.error(
                    "Missing Supabase environment variables. "
                    "Please set SUPABASE_URL and SUPABASE_ANON_KEY"
                )
                return None
            cls._client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


async def get_supabase() -> Optional[AsyncClient]:
    return await SupabaseClient.get_client()
