"""
election_backend/routes/supporters.py
Supporter request routes

Students request a role; the candidate accepts or rejects.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.orm.user import User
from election_backend.rbac import get_current_user, require_candidate
from election_backend.schemas.supporter import RespondRequest, SupporterRequestCreate
from election_backend.services import supporter_service
from election_backend.services.supporter_service import request_with_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/supporters", tags=["Supporters"])


@router.post("/request", status_code=201)
async def request_supporter_role(
    body: SupporterRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await supporter_service.request_support(db, current_user, body.candidate_id, body.role)
    return {
        "success": True,
        "message": f"Request sent to be a {body.role.value}",
        "request": request.to_dict(),
    }


@router.get("/my-requests")
async def get_my_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await supporter_service.list_for_student(db, current_user.id)
    requests = [request_with_user(req, candidate, "candidate") for req, candidate in rows]
    return {"success": True, "count": len(requests), "requests": requests}


@router.put("/{request_id}/accept")
async def accept_request(
    request_id: str,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    request = await supporter_service.accept_request(db, request_id, current_user)
    return {"success": True, "message": "Supporter request accepted", "request": request.to_dict()}


@router.put("/{request_id}/reject")
async def reject_request(
    request_id: str,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    request = await supporter_service.reject_request(db, request_id, current_user)
    return {"success": True, "message": "Supporter request rejected", "request": request.to_dict()}


@router.patch("/respond")
async def respond_to_request(
    body: RespondRequest,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
):
    request = await supporter_service.respond_to_request(db, body.supporter_id, current_user, body.action)
    return {
        "success": True,
        "message": f"Supporter request {request.status.value}",
        "request": request.to_dict(),
    }


@router.get("/candidate/{candidate_id}")
async def get_candidate_supporters(candidate_id: str, db: AsyncSession = Depends(get_db)):
    """Public list of requests addressed to a candidate, grouped by status."""
    rows = await supporter_service.list_for_candidate(db, candidate_id)
    supporters = [request_with_user(req, student, "student") for req, student in rows]

    grouped = {"pending": [], "accepted": [], "rejected": []}
    for item in supporters:
        grouped[item["status"]].append(item)

    return {"success": True, "count": len(supporters), "supporters": supporters, "by_status": grouped}
