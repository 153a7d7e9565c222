import logging
from typing import Optional

from supabase import AsyncClient

from hdtn_connect.config.settings import Settings
from hdtn_connect.modules.profiles.models import PROFILES_SETUP_SQL
from hdtn_connect.modules.profiles.schemas import TableState
from hdtn_connect.modules.profiles.service import ProfileService
from hdtn_connect.modules.setup.schemas import SETUP_STEPS, SetupStatus

logger = logging.getLogger(__name__)


class DatabaseSetupService:
    """Backs the configuration and guided database-setup screens."""

    def __init__(self, supabase: Optional[AsyncClient], settings: Settings):
        self.supabase = supabase
        self.settings = settings

    async def get_status(self) -> SetupStatus:
        status = SetupStatus(
            supabase_configured=self.supabase is not None,
            assistant_configured=self.settings.is_assistant_configured,
        )
        if self.supabase is None:
            return status
        status.table = await ProfileService(self.supabase).probe_table()
        if status.table.state == TableState.MISSING:
            status.steps = SETUP_STEPS
            status.sql = PROFILES_SETUP_SQL
        return status

    async def create_table(self) -> bool:
        """One best-effort attempt through an ``exec_sql`` RPC.

        Anon keys normally lack the privilege, so False is the expected result
        and the caller should fall back to the manual steps.
        """
        if self.supabase is None:
            return False
        try:
            await self.supabase.rpc("exec_sql", {"sql": PROFILES_SETUP_SQL}).execute()
            logger.info("Profiles table created via exec_sql")
            return True
        except Exception as e:
            logger.error(f"Error creating table: {e}")
            return False
