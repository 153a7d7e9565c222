import logging
from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient

from hdtn_connect.modules.profiles.models import PROFILES_TABLE
from hdtn_connect.modules.profiles.schemas import (
    Profile, ProfileUpdate, TableState, TableStatus
)

logger = logging.getLogger(__name__)

# PostgREST / Postgres error codes
TABLE_MISSING_CODES = {"PGRST205", "42P01"}
UNIQUE_VIOLATION_CODE = "23505"

FALLBACK_EMAIL = "user@example.com"
FALLBACK_NAME = "User"


def is_table_missing(error: APIError) -> bool:
    return error.code in TABLE_MISSING_CODES


def default_display_name(user: Any) -> str:
    """Name used to seed a new profile: signup full_name, else email local part, else "User"."""
    metadata = getattr(user, "user_metadata", None) or {}
    if metadata.get("full_name"):
        return metadata["full_name"]
    email = getattr(user, "email", None)
    if email and email.split("@")[0]:
        return email.split("@")[0]
    return FALLBACK_NAME


class ProfileService:
    """Stateless provisioning of rows in the profiles table.

    No method raises: failures are logged and reported as None, except that a
    missing table yields a non-persisted fallback profile on the read and
    create paths.
    """

    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    async def probe_table(self) -> TableStatus:
        """Minimal read against the profiles table, classified by error code."""
        try:
            await self.supabase.table(PROFILES_TABLE)\
                .select("id")\
                .limit(1)\
                .execute()
            return TableStatus(state=TableState.EXISTS)
        except APIError as e:
            state = TableState.MISSING if is_table_missing(e) else TableState.ERROR
            return TableStatus(state=state, code=e.code, message=e.message)
        except Exception as e:
            return TableStatus(state=TableState.ERROR, message=str(e))

    async def check_table_exists(self) -> bool:
        status = await self.probe_table()
        if status.state != TableState.EXISTS:
            logger.info(f"Profiles table check failed: {status.code} {status.message}")
        return status.state == TableState.EXISTS

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Stored profile, a fallback when the table is missing, or None."""
        if not await self.check_table_exists():
            logger.warning("Profiles table does not exist, returning fallback profile")
            return self.fallback_profile(user_id)
        try:
            result = await self.supabase.table(PROFILES_TABLE)\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            if not result.data:
                return None
            return Profile(**result.data[0])
        except APIError as e:
            logger.error(f"Error fetching profile {user_id}: [{e.code}] {e.message}")
            if is_table_missing(e):
                return self.fallback_profile(user_id)
            return None
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            return None

    async def create_profile(self, user: Any, profile_data: Optional[ProfileUpdate] = None) -> Optional[Profile]:
        """Insert a default profile row for ``user`` seeded from ``profile_data``."""
        profile_data = profile_data or ProfileUpdate()
        if not await self.check_table_exists():
            logger.warning("Profiles table does not exist, using fallback profile")
            return self.fallback_profile(user.id, email=user.email, profile_data=profile_data)

        metadata = getattr(user, "user_metadata", None) or {}
        now = datetime.now(timezone.utc)
        try:
            profile = Profile(
                id=user.id,
                email=user.email or "",
                full_name=profile_data.full_name or metadata.get("full_name"),
                avatar_url=profile_data.avatar_url,
                bio=profile_data.bio,
                skills=profile_data.skills or [],
                location=profile_data.location,
                education=profile_data.education or [],
                created_at=now,
                updated_at=now,
            )
            result = await self.supabase.table(PROFILES_TABLE)\
                .insert(profile.to_row())\
                .execute()
            if not result.data:
                logger.error(f"Profile insert for {user.id} returned no row")
                return None
            return Profile(**result.data[0])
        except APIError as e:
            logger.error(f"Error creating profile {user.id}: [{e.code}] {e.message}")
            if is_table_missing(e):
                return self.fallback_profile(user.id, email=user.email, profile_data=profile_data)
            if e.code == UNIQUE_VIOLATION_CODE:
                # Row was created concurrently (e.g. by the signup trigger)
                return await self.get_profile(user.id)
            return None
        except Exception as e:
            logger.error(f"Error creating profile {user.id}: {e}")
            return None

    async def update_profile(self, user_id: str, updates: ProfileUpdate) -> Optional[Profile]:
        """Merge ``updates`` into the existing row. Never creates a row."""
        if not await self.check_table_exists():
            logger.warning("Profiles table does not exist, cannot update profile")
            return None
        try:
            update_data = updates.to_row()
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            result = await self.supabase.table(PROFILES_TABLE)\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
            if not result.data:
                logger.error(f"Profile update for {user_id} matched no row")
                return None
            return Profile(**result.data[0])
        except APIError as e:
            logger.error(f"Error updating profile {user_id}: [{e.code}] {e.message}")
            return None
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            return None

    async def get_or_create_profile(self, user: Any) -> Optional[Profile]:
        profile = await self.get_profile(user.id)
        if profile is None:
            profile = await self.create_profile(
                user, ProfileUpdate(full_name=default_display_name(user))
            )
        return profile

    @staticmethod
    def fallback_profile(
        user_id: str,
        email: Optional[str] = None,
        profile_data: Optional[ProfileUpdate] = None,
    ) -> Profile:
        profile_data = profile_data or ProfileUpdate()
        now = datetime.now(timezone.utc)
        return Profile(
            id=user_id,
            email=email or FALLBACK_EMAIL,
            full_name=profile_data.full_name or FALLBACK_NAME,
            avatar_url=profile_data.avatar_url,
            bio=profile_data.bio,
            skills=profile_data.skills or [],
            location=profile_data.location,
            education=profile_data.education or [],
            created_at=now,
            updated_at=now,
            is_fallback=True,
        )
