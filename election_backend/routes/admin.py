"""
election_backend/routes/admin.py
Admin routes (admin and superadmin)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.orm.user import User
from election_backend.rbac import require_admin
from election_backend.schemas.config import LockPhaseRequest
from election_backend.schemas.nomination import CandidateStatusUpdate, StatusUpdate
from election_backend.services import manifesto_service, nomination_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.patch("/nomination-status")
async def update_nomination_status(
    body: CandidateStatusUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Set the status of a candidate's nomination."""
    nomination = await nomination_service.set_status_for_candidate(
        db, body.candidate_id, current_user, body.status
    )
    return {
        "success": True,
        "message": f"Nomination marked {nomination.status.value}",
        "nomination": nomination.to_dict(),
    }


@router.put("/nominations/{nomination_id}/status")
async def set_nomination_status(
    nomination_id: str,
    body: StatusUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    nomination = await nomination_service.set_nomination_status(db, nomination_id, current_user, body.status)
    return {
        "success": True,
        "message": f"Nomination marked {nomination.status.value}",
        "nomination": nomination.to_dict(),
    }


@router.post("/manifestos/lock-phase")
async def lock_phase(
    body: LockPhaseRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    locked = await manifesto_service.lock_phase(db, body.phase, current_user)
    return {"success": True, "message": f"Locked {locked} {body.phase.value} manifestos", "locked": locked}


@router.post("/manifestos/{manifesto_id}/lock")
async def lock_manifesto(
    manifesto_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    manifesto = await manifesto_service.lock_manifesto(db, manifesto_id, current_user)
    return {"success": True, "message": "Manifesto locked", "manifesto": manifesto.to_dict()}
