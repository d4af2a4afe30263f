"""
election_backend/routes/public.py
Unauthenticated read-only routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.services import deadline_gate
from election_backend.services.config_store import ConfigStore

router = APIRouter(tags=["Public"])


@router.get("/deadlines")
async def get_deadlines(db: AsyncSession = Depends(get_db)):
    """Every election window with its bounds and whether it is open now."""
    config = await ConfigStore(db).get()
    return {"success": True, "windows": deadline_gate.window_status(config)}
