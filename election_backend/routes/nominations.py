"""
election_backend/routes/nominations.py
Nomination routes

Public: list accepted nominations, view one nomination.
Candidate: create, update, read own.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.errors import NotFoundError
from election_backend.orm.nomination import NominationStatus
from election_backend.orm.user import User
from election_backend.rbac import require_candidate
from election_backend.schemas.nomination import NominationCreate, NominationUpdate
from election_backend.services import nomination_service
from election_backend.services.nomination_service import nomination_with_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/nominations", tags=["Nominations"])


@router.get("")
async def list_accepted_nominations(db: AsyncSession = Depends(get_db)):
    """Accepted nominations with their candidates."""
    rows = await nomination_service.list_nominations(db, status=NominationStatus.accepted)
    nominations = [nomination_with_owner(nomination, owner) for nomination, owner in rows]
    return {"success": True, "count": len(nominations), "nominations": nominations}


# Must be registered before /{nomination_id}
@router.get("/my-nomination")
async def get_my_nomination(
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    nomination = await nomination_service.get_nomination_for_user(db, current_user.id)
    if not nomination:
        raise NotFoundError("Nomination")
    return {"success": True, "nomination": nomination_with_owner(nomination, current_user)}


@router.post("", status_code=201)
async def create_nomination(
    body: NominationCreate,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    nomination = await nomination_service.create_nomination(
        db, current_user, positions=body.positions, score=body.score
    )
    return {
        "success": True,
        "message": "Nomination created successfully",
        "nomination": nomination.to_dict(),
    }


@router.put("/{nomination_id}")
async def update_nomination(
    nomination_id: str,
    body: NominationUpdate,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    nomination = await nomination_service.update_nomination(
        db, nomination_id, current_user, body.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Nomination updated successfully",
        "nomination": nomination.to_dict(),
    }


@router.get("/{nomination_id}")
async def get_nomination(nomination_id: str, db: AsyncSession = Depends(get_db)):
    nomination, owner = await nomination_service.get_nomination_with_owner(db, nomination_id)
    return {"success": True, "nomination": nomination_with_owner(nomination, owner)}
