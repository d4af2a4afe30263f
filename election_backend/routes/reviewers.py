"""
election_backend/routes/reviewers.py
Phase reviewer routes

Reviewers log in with the shared credentials of one phase and receive a
reviewer token; user access tokens are not accepted here.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.core.rate_limit import limiter
from election_backend.database import get_db
from election_backend.rbac import ReviewerIdentity, get_current_reviewer
from election_backend.schemas.review import CommentCreate, ReviewerLogin
from election_backend.services import review_service

router = APIRouter(prefix="/reviewers", tags=["Reviewers"])


@router.post("/login")
@limiter.limit("10/minute")
async def reviewer_login(
    request: Request,  # Required by slowapi
    credentials: ReviewerLogin,
    db: AsyncSession = Depends(get_db),
):
    token = await review_service.reviewer_login(
        db, credentials.username, credentials.password, credentials.phase
    )
    return {
        "success": True,
        "access_token": token,
        "token_type": "bearer",
        "reviewer": {"username": credentials.username, "phase": credentials.phase.value},
    }


@router.get("/manifestos")
async def get_manifestos_for_review(
    reviewer: ReviewerIdentity = Depends(get_current_reviewer),
    db: AsyncSession = Depends(get_db),
):
    manifestos = await review_service.list_for_phase(db, reviewer.phase)
    return {
        "success": True,
        "phase": reviewer.phase.value,
        "count": len(manifestos),
        "manifestos": manifestos,
    }


@router.post("/comments", status_code=201)
async def add_comment(
    body: CommentCreate,
    reviewer: ReviewerIdentity = Depends(get_current_reviewer),
    db: AsyncSession = Depends(get_db),
):
    comment = await review_service.add_comment(db, body.manifesto_id, reviewer, body.comment)
    return {"success": True, "message": "Comment added successfully", "comment": comment.to_dict()}


@router.get("/comments/{manifesto_id}")
async def get_manifesto_comments(manifesto_id: str, db: AsyncSession = Depends(get_db)):
    comments = await review_service.list_comments(db, manifesto_id)
    return {"success": True, "count": len(comments), "comments": [c.to_dict() for c in comments]}
