"""
Nomination Service

Lifecycle of a candidate's nomination:
- create: one per owner, only while the nomination window is open
- update: owner only, window open, not locked, still pending
- set status: administrative override, ignores windows

Status vocabulary: pending -> accepted | rejected (admins may move it again).
"""
import logging
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.errors import (
    ConflictError, ErrorCode, LockedError, NotFoundError, validate_ownership
)
from election_backend.orm.activity_log import ActionType
from election_backend.orm.nomination import Nomination, NominationStatus
from election_backend.orm.user import User
from election_backend.services import deadline_gate
from election_backend.services.activity_logger import log_activity
from election_backend.services.config_store import ConfigStore
from election_backend.services.deadline_gate import Window

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("positions", "score", "is_locked")


def owner_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "roll_no": user.roll_no,
        "department": user.department,
    }


def nomination_with_owner(nomination: Nomination, owner: Optional[User]) -> Dict[str, Any]:
    data = nomination.to_dict()
    data["user"] = owner_summary(owner)
    return data


# =============================================================================
# Reads
# =============================================================================

async def get_nomination(db: AsyncSession, nomination_id: str) -> Nomination:
    result = await db.execute(select(Nomination).where(Nomination.id == nomination_id))
    nomination = result.scalar_one_or_none()
    if not nomination:
        raise NotFoundError("Nomination", nomination_id)
    return nomination


async def get_nomination_for_user(db: AsyncSession, user_id: str) -> Optional[Nomination]:
    result = await db.execute(select(Nomination).where(Nomination.user_id == user_id))
    return result.scalar_one_or_none()


async def get_nomination_with_owner(db: AsyncSession, nomination_id: str) -> Tuple[Nomination, User]:
    result = await db.execute(
        select(Nomination, User)
        .join(User, User.id == Nomination.user_id)
        .where(Nomination.id == nomination_id)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Nomination", nomination_id)
    return row[0], row[1]


async def list_nominations(
    db: AsyncSession,
    status: Optional[NominationStatus] = None
) -> List[Tuple[Nomination, User]]:
    """All nominations with owners, optionally filtered by status, newest activity first."""
    query = select(Nomination, User).join(User, User.id == Nomination.user_id)
    if status is not None:
        query = query.where(Nomination.status == status)
    query = query.order_by(Nomination.updated_at.desc())
    result = await db.execute(query)
    return [(row[0], row[1]) for row in result.all()]


# =============================================================================
# Mutations
# =============================================================================

async def create_nomination(
    db: AsyncSession,
    owner: User,
    positions: List[str],
    score: Optional[float] = None
) -> Nomination:
    """
    Create the owner's nomination.

    Raises:
        ConflictError: owner already has a nomination
        ForbiddenError: nomination window closed
    """
    if await get_nomination_for_user(db, owner.id):
        raise ConflictError(
            "You have already created a nomination. Use the update endpoint to modify it.",
            code=ErrorCode.ALREADY_EXISTS
        )

    config = await ConfigStore(db).get()
    deadline_gate.require_window_open(config, Window.nomination, "Nomination period is not currently open")

    nomination = Nomination(
        user_id=owner.id,
        positions=list(positions),
        score=score,
        status=NominationStatus.pending,
        is_locked=False,
    )
    db.add(nomination)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You have already created a nomination", code=ErrorCode.ALREADY_EXISTS)

    logger.info(f"Nomination {nomination.id} created by {owner.id}")
    await log_activity(db, ActionType.NOMINATION_CREATED, actor_id=owner.id,
                       details={"nomination_id": nomination.id})
    return nomination


async def update_nomination(
    db: AsyncSession,
    nomination_id: str,
    actor: User,
    patch: Dict[str, Any]
) -> Nomination:
    """
    Apply a partial edit from the owning candidate.

    Only positions, score and the lock flag can be changed. Once an admin has
    accepted or rejected the nomination, the candidate can no longer edit it.

    Raises:
        NotFoundError, ForbiddenError (not owner / window closed), LockedError
    """
    nomination = await get_nomination(db, nomination_id)
    validate_ownership(actor.id, nomination.user_id, "nomination")

    config = await ConfigStore(db).get()
    deadline_gate.require_window_open(
        config, Window.nomination, "Nomination period has ended. Cannot update nomination."
    )

    if nomination.is_locked:
        raise LockedError("Nomination is locked and can no longer be edited")

    if nomination.status != NominationStatus.pending:
        raise LockedError(f"Nomination has been {nomination.status.value} and can no longer be edited")

    changes = {field: patch[field] for field in EDITABLE_FIELDS if patch.get(field) is not None}
    for field, value in changes.items():
        setattr(nomination, field, list(value) if field == "positions" else value)

    await db.commit()

    action = ActionType.NOMINATION_LOCKED if changes.get("is_locked") else ActionType.NOMINATION_UPDATED
    logger.info(f"Nomination {nomination.id} {action.value} by {actor.id}")
    await log_activity(db, action, actor_id=actor.id,
                       details={"nomination_id": nomination.id, "fields": sorted(changes)})
    return nomination


async def set_nomination_status(
    db: AsyncSession,
    nomination_id: str,
    actor: User,
    status: NominationStatus
) -> Nomination:
    """Administrative status change. Caller has already checked admin authority."""
    nomination = await get_nomination(db, nomination_id)
    previous = nomination.status

    nomination.status = status
    await db.commit()

    logger.info(f"Nomination {nomination.id} status {previous.value} -> {status.value} by {actor.id}")
    await log_activity(db, ActionType.NOMINATION_STATUS_CHANGED, actor_id=actor.id,
                       details={"nomination_id": nomination.id, "from": previous.value, "to": status.value})
    return nomination


async def set_status_for_candidate(
    db: AsyncSession,
    candidate_id: str,
    actor: User,
    status: NominationStatus
) -> Nomination:
    nomination = await get_nomination_for_user(db, candidate_id)
    if not nomination:
        raise NotFoundError("Nomination for candidate", candidate_id)
    return await set_nomination_status(db, nomination.id, actor, status)
