"""
Check Supabase Connection Script
Probes the profiles table once and logs what to do when it is not usable.
Always exits with status 0; the outcome is reported in the log only.
"""

import asyncio
import logging

from hdtn_connect.database.supabase_client import get_supabase
from hdtn_connect.modules.profiles.schemas import TableState
from hdtn_connect.modules.profiles.service import ProfileService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def check_database() -> bool:
    logger.info("Checking Supabase connection...")
    supabase = await get_supabase()
    if supabase is None:
        logger.error("Set SUPABASE_URL and SUPABASE_ANON_KEY (or the VITE_* equivalents) and retry")
        return False

    status = await ProfileService(supabase).probe_table()
    if status.state == TableState.EXISTS:
        logger.info("Supabase connection and profiles table working!")
        return True

    if status.state == TableState.MISSING:
        logger.warning("The profiles table needs to be created!")
        logger.warning("The setup SQL is served at GET /api/v1/setup/sql (PROFILES_SETUP_SQL in hdtn_connect/modules/profiles/models.py)")
        logger.warning("Go to: Supabase Dashboard > SQL Editor > New Query")
        logger.warning("Paste the setup SQL and run it")
    else:
        logger.error(f"Connection/Table error: [{status.code}] {status.message}")
    return False


def main():
    try:
        asyncio.run(check_database())
    except Exception as e:
        logger.error(f"Unexpected error: {e}")


if __name__ == "__main__":
    main()
