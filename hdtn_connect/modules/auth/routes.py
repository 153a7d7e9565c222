from fastapi import APIRouter, Depends, HTTPException, status

from hdtn_connect.core.dependencies import (
    get_authenticated_state, get_session_controller, is_session_owner
)
from hdtn_connect.modules.auth.schemas import (
    AuthFailureKind, AuthResult, AuthStateResponse, SessionResponse,
    SignInRequest, SignUpRequest, SignUpResponse
)
from hdtn_connect.modules.auth.service import SessionController
from hdtn_connect.modules.auth.state import AuthState

router = APIRouter(prefix="/auth", tags=["auth"])


def state_response(state: AuthState, include_user: bool = True) -> AuthStateResponse:
    user = state.user if include_user else None
    return AuthStateResponse(
        status=state.status.value,
        user_id=user.id if user is not None else None,
        email=getattr(user, "email", None),
        profile=state.profile if include_user else None,
        loading=state.loading,
        profile_loading=state.profile_loading,
    )


def raise_for_failure(result: AuthResult, auth_status: int):
    if result.error is None:
        return
    if result.error.kind == AuthFailureKind.CONFIGURATION:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error.message)
    if result.error.kind == AuthFailureKind.AUTHENTICATION:
        raise HTTPException(status_code=auth_status, detail=result.error.message)
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error.message)


@router.post("/signup", response_model=SignUpResponse, status_code=201)
async def signup(
    signup_data: SignUpRequest,
    controller: SessionController = Depends(get_session_controller)
):
    """Register a new user"""
    user_data = {}
    if signup_data.full_name:
        user_data["full_name"] = signup_data.full_name
    result = await controller.sign_up(signup_data.email, signup_data.password, user_data)
    raise_for_failure(result, status.HTTP_400_BAD_REQUEST)
    if result.user is None:
        raise HTTPException(status_code=400, detail="Failed to register user")
    await controller.settle()
    if result.session is None:
        return SignUpResponse(
            user_id=result.user.id,
            email=result.user.email or signup_data.email,
            message="Check your email to confirm your account",
        )
    return SignUpResponse(
        user_id=result.user.id,
        email=result.user.email or signup_data.email,
        message="User registered successfully",
        access_token=result.session.access_token,
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    login_data: SignInRequest,
    controller: SessionController = Depends(get_session_controller)
):
    """Sign in and return the resulting session state with its access token"""
    result = await controller.sign_in(login_data.email, login_data.password)
    raise_for_failure(result, status.HTTP_401_UNAUTHORIZED)
    if result.session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No session returned")
    await controller.settle()
    return SessionResponse(
        **dict(state_response(controller.state)),
        access_token=result.session.access_token,
    )


@router.post("/logout", response_model=AuthStateResponse)
async def logout(
    state: AuthState = Depends(get_authenticated_state),
    controller: SessionController = Depends(get_session_controller)
):
    """Sign out and drop the cached profile"""
    result = await controller.sign_out()
    raise_for_failure(result, status.HTTP_400_BAD_REQUEST)
    return state_response(controller.state)


@router.get("/state", response_model=AuthStateResponse)
async def get_state(
    controller: SessionController = Depends(get_session_controller),
    is_owner: bool = Depends(is_session_owner)
):
    """Current session state; user and profile only for the session's bearer token.

    Does not wait for an in-flight profile load.
    """
    return state_response(controller.state, include_user=is_owner)
