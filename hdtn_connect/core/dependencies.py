"""
Core dependencies: access to the process-wide controller and services
created at startup and kept on ``app.state``, and the bearer-token guard for
routes that act on the signed-in user.
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient
from typing import Optional

from hdtn_connect.config.settings import settings
from hdtn_connect.modules.assistant.service import AssistantService
from hdtn_connect.modules.auth.schemas import NOT_CONFIGURED_MESSAGE
from hdtn_connect.modules.auth.service import SessionController
from hdtn_connect.modules.auth.state import AuthState
from hdtn_connect.modules.setup.service import DatabaseSetupService

# Missing credentials are reported as 401 below, not by HTTPBearer itself
security = HTTPBearer(auto_error=False)


def get_supabase_client(request: Request) -> Optional[AsyncClient]:
    return getattr(request.app.state, "supabase", None)


def get_session_controller(request: Request) -> SessionController:
    return request.app.state.session_controller


def get_assistant_service(request: Request) -> AssistantService:
    return request.app.state.assistant_service


def get_setup_service(supabase: Optional[AsyncClient] = Depends(get_supabase_client)) -> DatabaseSetupService:
    return DatabaseSetupService(supabase, settings)


def require_configured(controller: SessionController = Depends(get_session_controller)) -> SessionController:
    if not controller.is_configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=NOT_CONFIGURED_MESSAGE)
    return controller


async def is_session_owner(
    controller: SessionController = Depends(get_session_controller),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> bool:
    """Whether the request carries an access token of the signed-in user"""
    token = credentials.credentials if credentials is not None else None
    return await controller.owns_session(token)


async def get_authenticated_state(
    controller: SessionController = Depends(require_configured),
    is_owner: bool = Depends(is_session_owner)
) -> AuthState:
    """Current state; 401 unless a session exists and the bearer token belongs to it"""
    state = controller.state
    if state.user is None or not is_owner:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return state
