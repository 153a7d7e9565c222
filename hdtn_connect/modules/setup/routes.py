from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from hdtn_connect.core.dependencies import get_setup_service
from hdtn_connect.modules.profiles.models import PROFILES_SETUP_SQL
from hdtn_connect.modules.setup.schemas import CreateTableResponse, SetupStatus
from hdtn_connect.modules.setup.service import DatabaseSetupService

router = APIRouter(prefix="/setup", tags=["setup"])


@router.get("/status", response_model=SetupStatus)
async def get_status(service: DatabaseSetupService = Depends(get_setup_service)):
    """Configuration flags and profiles table status"""
    return await service.get_status()


@router.get("/sql", response_class=PlainTextResponse)
async def get_setup_sql():
    """SQL to paste into the Supabase SQL editor"""
    return PROFILES_SETUP_SQL


@router.post("/create-table", response_model=CreateTableResponse)
async def create_table(service: DatabaseSetupService = Depends(get_setup_service)):
    """Try to create the profiles table; usually needs the manual steps instead"""
    if await service.create_table():
        return CreateTableResponse(created=True, message="Profiles table created")
    return CreateTableResponse(
        created=False,
        message="Automatic setup failed. Run the setup SQL in the Supabase SQL editor.",
    )
