from fastapi import APIRouter, Depends, HTTPException, status

from hdtn_connect.core.dependencies import get_authenticated_state, require_configured
from hdtn_connect.modules.auth.service import SessionController
from hdtn_connect.modules.auth.state import AuthState
from hdtn_connect.modules.profiles.schemas import EducationCreate, Profile, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["profile"])

SAVE_FAILED = "Profile could not be saved. Check that the profiles table has been set up."


@router.get("", response_model=Profile)
async def get_profile(state: AuthState = Depends(get_authenticated_state)):
    """Profile of the signed-in user"""
    if state.profile is None:
        detail = "Profile is still loading" if state.profile_loading else "Profile not found"
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return state.profile


@router.put("", response_model=Profile)
async def update_profile(
    updates: ProfileUpdate,
    state: AuthState = Depends(get_authenticated_state),
    controller: SessionController = Depends(require_configured)
):
    """Update the signed-in user's profile; skills may be a comma-separated string"""
    profile = await controller.update_profile(updates)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SAVE_FAILED)
    return profile


@router.post("/education", response_model=Profile, status_code=201)
async def add_education(
    entry: EducationCreate,
    state: AuthState = Depends(get_authenticated_state),
    controller: SessionController = Depends(require_configured)
):
    """Append an education entry"""
    if state.profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    profile = await controller.add_education(entry)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SAVE_FAILED)
    return profile


@router.delete("/education/{entry_id}", response_model=Profile)
async def remove_education(
    entry_id: str,
    state: AuthState = Depends(get_authenticated_state),
    controller: SessionController = Depends(require_configured)
):
    """Remove an education entry by id"""
    if state.profile is None or all(e.id != entry_id for e in state.profile.education):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Education entry not found")
    profile = await controller.remove_education(entry_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SAVE_FAILED)
    return profile
