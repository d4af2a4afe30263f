"""
election_backend/routes/candidate.py
Candidate dashboard
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.orm.user import User
from election_backend.rbac import require_candidate
from election_backend.services import admin_service

router = APIRouter(prefix="/candidate", tags=["Candidate"])


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    """Profile, nomination, supporter requests and manifestos in one payload."""
    return {"success": True, "dashboard": await admin_service.candidate_dashboard(db, current_user)}
