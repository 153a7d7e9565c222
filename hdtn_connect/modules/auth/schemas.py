from enum import Enum
from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Any, Optional

from hdtn_connect.modules.profiles.schemas import Profile

NOT_CONFIGURED_MESSAGE = "Supabase is not configured. Please set your environment variables."


class AuthFailureKind(str, Enum):
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    UNKNOWN = "unknown"


class AuthFailure(BaseModel):
    kind: AuthFailureKind
    message: str
    code: Optional[str] = None


class AuthResult(BaseModel):
    """Outcome of a sign-up / sign-in / sign-out call. ``user`` is the Supabase user object."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: Optional[Any] = None
    session: Optional[Any] = None
    error: Optional[AuthFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    message: str
    # None while the email address awaits confirmation
    access_token: Optional[str] = None
    token_type: str = "bearer"


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class AuthStateResponse(BaseModel):
    status: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    profile: Optional[Profile] = None
    loading: bool
    profile_loading: bool


class SessionResponse(AuthStateResponse):
    """State after sign-in plus the bearer token for the profile routes"""
    access_token: str
    token_type: str = "bearer"
