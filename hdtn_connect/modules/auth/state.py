"""Session/profile state held by the SessionController.

The controller is the only writer. Every change goes through one of the
transition functions below, each returning a new immutable ``AuthState``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from hdtn_connect.modules.profiles.schemas import Profile


class SessionStatus(str, Enum):
    AUTHENTICATING = "authenticating"
    ANONYMOUS = "anonymous"
    AUTHENTICATED_NO_PROFILE = "authenticated_no_profile"
    AUTHENTICATED_WITH_PROFILE = "authenticated_with_profile"


@dataclass(frozen=True)
class AuthState:
    status: SessionStatus = SessionStatus.AUTHENTICATING
    session: Optional[Any] = None
    profile: Optional[Profile] = None
    # Primary loading flag: cleared once the initial session lookup resolves
    loading: bool = True
    profile_loading: bool = False

    @property
    def user(self) -> Optional[Any]:
        return getattr(self.session, "user", None) if self.session is not None else None

    @property
    def user_id(self) -> Optional[str]:
        user = self.user
        return user.id if user is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.status in (
            SessionStatus.AUTHENTICATED_NO_PROFILE,
            SessionStatus.AUTHENTICATED_WITH_PROFILE,
        )


def session_started(state: AuthState, session: Any) -> AuthState:
    """A session is known; its profile load is about to run."""
    return replace(
        state,
        status=SessionStatus.AUTHENTICATED_NO_PROFILE,
        session=session,
        profile=None,
        loading=False,
        profile_loading=True,
    )


def session_refreshed(state: AuthState, session: Any) -> AuthState:
    return replace(state, session=session, loading=False)


def session_ended(state: AuthState) -> AuthState:
    return replace(
        state,
        status=SessionStatus.ANONYMOUS,
        session=None,
        profile=None,
        loading=False,
        profile_loading=False,
    )


def profile_loaded(state: AuthState, profile: Optional[Profile]) -> AuthState:
    if not state.is_authenticated:
        return state
    if profile is None:
        return replace(state, status=SessionStatus.AUTHENTICATED_NO_PROFILE, profile=None, profile_loading=False)
    return replace(state, status=SessionStatus.AUTHENTICATED_WITH_PROFILE, profile=profile, profile_loading=False)


def profile_replaced(state: AuthState, profile: Profile) -> AuthState:
    if not state.is_authenticated:
        return state
    return replace(state, status=SessionStatus.AUTHENTICATED_WITH_PROFILE, profile=profile)
