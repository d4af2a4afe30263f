"""
Admin Service

Read models for the admin and superadmin consoles: statistics, candidate
and user listings, the candidate dashboard, and promotion to admin.
"""
import logging
from typing import Dict, Any, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.errors import BadRequestError, NotFoundError
from election_backend.orm.activity_log import ActionType
from election_backend.orm.manifesto import Manifesto, ManifestoPhase
from election_backend.orm.nomination import Nomination, NominationStatus
from election_backend.orm.reviewer_comment import ReviewerComment
from election_backend.orm.supporter_request import SupporterRequest, SupporterRole, SupporterStatus
from election_backend.orm.user import User, UserRole
from election_backend.services.activity_logger import log_activity
from election_backend.services.manifesto_service import sort_by_phase

logger = logging.getLogger(__name__)


async def _count(db: AsyncSession, model, *conditions) -> int:
    query = select(func.count(model.id))
    if conditions:
        query = query.where(*conditions)
    result = await db.execute(query)
    return result.scalar() or 0


async def get_statistics(db: AsyncSession) -> Dict[str, Any]:
    total_users = await _count(db, User)
    candidates = await _count(db, User, User.role == UserRole.candidate)
    students = await _count(db, User, User.role == UserRole.student)

    total_supporters = await _count(db, SupporterRequest)
    accepted_supporters = await _count(db, SupporterRequest, SupporterRequest.status == SupporterStatus.accepted)
    pending_supporters = await _count(db, SupporterRequest, SupporterRequest.status == SupporterStatus.pending)

    breakdown = {}
    for role in SupporterRole:
        breakdown[f"{role.value}s"] = await _count(
            db, SupporterRequest,
            SupporterRequest.role == role,
            SupporterRequest.status == SupporterStatus.accepted
        )

    manifestos = {"total": await _count(db, Manifesto)}
    for phase in ManifestoPhase:
        manifestos[phase.value] = await _count(db, Manifesto, Manifesto.phase == phase)

    nominations = {"total": await _count(db, Nomination)}
    for status in NominationStatus:
        nominations[status.value] = await _count(db, Nomination, Nomination.status == status)

    return {
        "users": {"total": total_users, "candidates": candidates, "students": students},
        "nominations": nominations,
        "supporters": {
            "total": total_supporters,
            "accepted": accepted_supporters,
            "pending": pending_supporters,
            "rejected": total_supporters - accepted_supporters - pending_supporters,
            "breakdown": breakdown,
        },
        "manifestos": manifestos,
        "comments": await _count(db, ReviewerComment),
    }


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def _nomination_detail(db: AsyncSession, nomination: Nomination) -> Dict[str, Any]:
    data = nomination.to_dict()

    result = await db.execute(
        select(SupporterRequest)
        .where(SupporterRequest.nomination_id == nomination.id)
        .order_by(SupporterRequest.created_at.desc())
    )
    data["supporter_requests"] = [r.to_dict() for r in result.scalars().all()]

    result = await db.execute(select(Manifesto).where(Manifesto.nomination_id == nomination.id))
    data["manifestos"] = [m.to_dict() for m in sort_by_phase(list(result.scalars().all()))]
    return data


async def list_candidates(db: AsyncSession) -> List[Dict[str, Any]]:
    """Candidates newest first, each with nomination, supporters and manifestos."""
    result = await db.execute(
        select(User, Nomination)
        .outerjoin(Nomination, Nomination.user_id == User.id)
        .where(User.role == UserRole.candidate)
        .order_by(User.created_at.desc())
    )
    candidates = []
    for user, nomination in result.all():
        data = user.to_dict()
        data["nomination"] = await _nomination_detail(db, nomination) if nomination else None
        candidates.append(data)
    return candidates


async def candidate_dashboard(db: AsyncSession, user: User) -> Dict[str, Any]:
    result = await db.execute(select(Nomination).where(Nomination.user_id == user.id))
    nomination = result.scalar_one_or_none()

    data = user.to_dict()
    data["nomination"] = await _nomination_detail(db, nomination) if nomination else None
    return data


async def create_admin(db: AsyncSession, user_id: str, actor: User) -> User:
    """Promote an existing user to admin."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)

    if user.role in (UserRole.admin, UserRole.superadmin):
        raise BadRequestError(f"User is already {user.role.value}")

    user.role = UserRole.admin
    await db.commit()

    logger.info(f"User {user.id} promoted to admin by {actor.id}")
    await log_activity(db, ActionType.ADMIN_CREATED, actor_id=actor.id, details={"user_id": user.id})
    return user
