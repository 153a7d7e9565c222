import asyncio
import logging
import secrets
from typing import Any, Dict, Optional, Set

from supabase import AsyncClient, AuthError

from hdtn_connect.modules.auth.schemas import (
    AuthFailure, AuthFailureKind, AuthResult, NOT_CONFIGURED_MESSAGE
)
from hdtn_connect.modules.auth.state import (
    AuthState, profile_loaded, profile_replaced, session_ended,
    session_refreshed, session_started
)
from hdtn_connect.modules.profiles.schemas import EducationCreate, Profile, ProfileUpdate
from hdtn_connect.modules.profiles.service import ProfileService

logger = logging.getLogger(__name__)


def _not_configured() -> AuthResult:
    return AuthResult(error=AuthFailure(kind=AuthFailureKind.CONFIGURATION, message=NOT_CONFIGURED_MESSAGE))


def _auth_failure(error: Exception) -> AuthResult:
    if isinstance(error, AuthError):
        return AuthResult(error=AuthFailure(
            kind=AuthFailureKind.AUTHENTICATION,
            message=str(error),
            code=getattr(error, "code", None),
        ))
    return AuthResult(error=AuthFailure(kind=AuthFailureKind.UNKNOWN, message=str(error)))


class SessionController:
    """Owns the authenticated session and keeps the user's profile in sync with it.

    ``supabase`` is None when the backing store is not configured; every
    operation then reports a configuration error instead of failing.

    Profile loads are tagged with a generation number that is bumped on each
    session change, sign-out and close; a load that resolves after its
    generation went stale is discarded.
    """

    def __init__(self, supabase: Optional[AsyncClient], profile_service: Optional[ProfileService] = None):
        self.supabase = supabase
        self.profiles = profile_service or (ProfileService(supabase) if supabase is not None else None)
        self._state = AuthState()
        self._generation = 0
        self._subscription = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_configured(self) -> bool:
        return self.supabase is not None

    @property
    def state(self) -> AuthState:
        return self._state

    async def start(self):
        """Subscribe to auth changes and resolve the current session."""
        if not self.is_configured:
            self._state = session_ended(self._state)
            return
        if self._subscription is None:
            self._subscription = self.supabase.auth.on_auth_state_change(self._on_auth_state_change)

        generation = self._generation
        try:
            session = await self.supabase.auth.get_session()
        except Exception as e:
            logger.error(f"Error retrieving session: {e}")
            session = None

        if generation != self._generation:
            # A notification already delivered fresher state
            return
        if session is not None and getattr(session, "user", None) is not None:
            self._generation += 1
            self._state = session_started(self._state, session)
            self._schedule_profile_load(session.user, self._generation)
        else:
            self._state = session_ended(self._state)

    def close(self):
        """Release the auth subscription and cancel in-flight profile loads.

        Safe to call more than once; ``settle()`` collects the cancelled loads.
        """
        self._generation += 1
        for task in self._pending:
            task.cancel()
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            subscription.unsubscribe()

    async def settle(self):
        """Wait until no profile load is in flight."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def owns_session(self, token: Optional[str]) -> bool:
        """True when ``token`` is an access token of the signed-in user."""
        user_id = self._state.user_id
        if not token or user_id is None or not self.is_configured:
            return False
        current = getattr(self._state.session, "access_token", None)
        if current and secrets.compare_digest(token.encode(), current.encode()):
            return True
        # Tokens issued before a refresh stay valid until they expire
        try:
            response = await self.supabase.auth.get_user(token)
        except Exception as e:
            logger.info(f"Rejected access token: {e}")
            return False
        user = getattr(response, "user", None)
        return user is not None and user.id == user_id

    def _on_auth_state_change(self, event: Any, session: Any):
        logger.debug(f"Auth state change: {event}")
        user = getattr(session, "user", None) if session is not None else None
        if user is None:
            self._generation += 1
            self._state = session_ended(self._state)
            return

        if event == "TOKEN_REFRESHED" and user.id == self._state.user_id:
            self._state = session_refreshed(self._state, session)
            return

        self._generation += 1
        self._state = session_started(self._state, session)
        self._schedule_profile_load(user, self._generation)

    def _schedule_profile_load(self, user: Any, generation: int):
        task = asyncio.get_running_loop().create_task(self._load_profile(user, generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _load_profile(self, user: Any, generation: int):
        try:
            profile = await self.profiles.get_or_create_profile(user)
        except Exception as e:
            logger.error(f"Error loading profile for {user.id}: {e}")
            profile = None
        if generation != self._generation:
            logger.info(f"Discarding stale profile load for {user.id}")
            return
        self._state = profile_loaded(self._state, profile)

    async def sign_up(self, email: str, password: str, user_data: Optional[Dict[str, Any]] = None) -> AuthResult:
        """Register a user. The profile is provisioned by the resulting auth notification."""
        if not self.is_configured:
            return _not_configured()
        try:
            response = await self.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": user_data or {}
                }
            })
            return AuthResult(user=response.user, session=response.session)
        except Exception as e:
            logger.info(f"Sign up failed for {email}: {e}")
            return _auth_failure(e)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        if not self.is_configured:
            return _not_configured()
        try:
            response = await self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
            return AuthResult(user=response.user, session=response.session)
        except Exception as e:
            logger.info(f"Sign in failed for {email}: {e}")
            return _auth_failure(e)

    async def sign_out(self) -> AuthResult:
        if not self.is_configured:
            return AuthResult(error=AuthFailure(
                kind=AuthFailureKind.CONFIGURATION, message="Supabase is not configured."
            ))
        try:
            await self.supabase.auth.sign_out()
        except Exception as e:
            logger.error(f"Sign out failed: {e}")
            return _auth_failure(e)
        # Do not wait for the SIGNED_OUT notification to drop the profile
        self._generation += 1
        self._state = session_ended(self._state)
        return AuthResult()

    async def update_profile(self, updates: ProfileUpdate) -> Optional[Profile]:
        """Persist ``updates`` for the current user and cache the stored row."""
        user = self._state.user
        if user is None or not self.is_configured:
            return None
        generation = self._generation
        try:
            updated = await self.profiles.update_profile(user.id, updates)
        except Exception as e:
            logger.error(f"Error updating profile for {user.id}: {e}")
            return None
        if updated is not None and generation == self._generation:
            self._state = profile_replaced(self._state, updated)
        return updated

    async def add_education(self, entry: EducationCreate) -> Optional[Profile]:
        profile = self._state.profile
        if profile is None:
            return None
        education = list(profile.education)
        education.append(entry.new_entry(education))
        return await self.update_profile(ProfileUpdate(education=education))

    async def remove_education(self, entry_id: str) -> Optional[Profile]:
        profile = self._state.profile
        if profile is None:
            return None
        education = [e for e in profile.education if e.id != entry_id]
        return await self.update_profile(ProfileUpdate(education=education))
