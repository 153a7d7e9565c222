from pydantic import BaseModel
from typing import List, Optional

from hdtn_connect.modules.profiles.schemas import TableStatus

SUPABASE_ENV_VARS = ["SUPABASE_URL", "SUPABASE_ANON_KEY"]

SETUP_STEPS = [
    "Go to your Supabase Dashboard (https://supabase.com/dashboard)",
    "Navigate to SQL Editor",
    'Click "New Query"',
    "Copy the setup SQL (GET /api/v1/setup/sql)",
    "Paste the SQL and run it",
    "Check the database status again",
]


class SetupStatus(BaseModel):
    supabase_configured: bool
    assistant_configured: bool
    required_env: List[str] = SUPABASE_ENV_VARS
    table: Optional[TableStatus] = None
    steps: List[str] = []
    sql: Optional[str] = None


class CreateTableResponse(BaseModel):
    created: bool
    message: str
