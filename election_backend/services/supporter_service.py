"""
Supporter Service

Students ask to back a candidate as proposer, seconder or campaigner; the
candidate accepts or rejects. Both transitions are one-way.

Capacity:
    Acceptance is capacity-checked, creation is not. The accepted count for a
    (nomination, role) lives in a counter column on the nomination, and
    acceptance is a single transaction of two conditional updates:

        UPDATE supporter_requests SET status = accepted
         WHERE id = :id AND status = pending
        UPDATE nominations SET <role>_count = <role>_count + 1
         WHERE id = :nomination_id AND <role>_count < :cap

    If the second statement matches no row the role is full; the transaction
    rolls back and the request stays pending. Concurrent accepts serialize on
    the nomination row, so the cap holds without any read-then-write window.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.errors import (
    BadRequestError, CapacityExceededError, ConflictError, ErrorCode, NotFoundError,
    validate_ownership
)
from election_backend.orm.activity_log import ActionType
from election_backend.orm.nomination import Nomination
from election_backend.orm.supporter_request import SupporterRequest, SupporterRole, SupporterStatus
from election_backend.orm.user import User
from election_backend.services import deadline_gate
from election_backend.services.activity_logger import log_activity
from election_backend.services.config_store import ConfigStore, cap_for_role
from election_backend.services.deadline_gate import ROLE_WINDOWS
from election_backend.services.nomination_service import get_nomination_for_user, owner_summary

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = {
    SupporterRole.proposer: Nomination.proposer_count,
    SupporterRole.seconder: Nomination.seconder_count,
    SupporterRole.campaigner: Nomination.campaigner_count,
}

RESPOND_ACTIONS = ("accept", "reject")


def request_with_user(request: SupporterRequest, user: Optional[User], key: str) -> Dict[str, Any]:
    data = request.to_dict()
    data[key] = owner_summary(user)
    return data


async def get_request(db: AsyncSession, request_id: str) -> SupporterRequest:
    result = await db.execute(select(SupporterRequest).where(SupporterRequest.id == request_id))
    request = result.scalar_one_or_none()
    if not request:
        raise NotFoundError("Supporter request", request_id)
    return request


async def _load_for_candidate_action(db: AsyncSession, request_id: str, actor: User) -> SupporterRequest:
    """Shared checks for accept/reject: exists, actor owns the nomination, still pending."""
    request = await get_request(db, request_id)

    result = await db.execute(select(Nomination.user_id).where(Nomination.id == request.nomination_id))
    owner_id = result.scalar_one_or_none()
    if owner_id is None:
        raise NotFoundError("Nomination", request.nomination_id)
    validate_ownership(actor.id, owner_id, "supporter request")

    if request.status != SupporterStatus.pending:
        raise ConflictError(
            f"Request has already been {request.status.value}",
            code=ErrorCode.ALREADY_PROCESSED
        )
    return request


# =============================================================================
# Mutations
# =============================================================================

async def request_support(
    db: AsyncSession,
    student: User,
    candidate_id: str,
    role: SupporterRole
) -> SupporterRequest:
    """
    Create a pending supporter request.

    Raises:
        NotFoundError: candidate has no nomination
        ForbiddenError: the role's window is closed
        ConflictError: same (student, nomination, role) already requested
    """
    nomination = await get_nomination_for_user(db, candidate_id)
    if not nomination:
        raise NotFoundError("Candidate nomination")

    config = await ConfigStore(db).get()
    deadline_gate.require_window_open(
        config, ROLE_WINDOWS[role], f"{role.value} request period is not currently open"
    )

    result = await db.execute(
        select(SupporterRequest.id).where(
            SupporterRequest.student_id == student.id,
            SupporterRequest.nomination_id == nomination.id,
            SupporterRequest.role == role,
        )
    )
    if result.scalar_one_or_none():
        raise ConflictError(
            f"You have already requested to be a {role.value} for this candidate",
            code=ErrorCode.ALREADY_EXISTS
        )

    request = SupporterRequest(
        student_id=student.id,
        candidate_id=candidate_id,
        nomination_id=nomination.id,
        role=role,
        status=SupporterStatus.pending,
    )
    db.add(request)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "You have already requested this role for this candidate",
            code=ErrorCode.ALREADY_EXISTS
        )

    logger.info(f"Supporter request {request.id}: {student.id} -> {candidate_id} as {role.value}")
    await log_activity(db, ActionType.SUPPORTER_REQUESTED, actor_id=student.id,
                       details={"supporter_request_id": request.id, "role": role.value})
    return request


async def accept_request(db: AsyncSession, request_id: str, actor: User) -> SupporterRequest:
    """
    Accept a pending request if the role still has room.

    Raises:
        NotFoundError, ForbiddenError (not the candidate),
        ConflictError (not pending), CapacityExceededError (role full)
    """
    request = await _load_for_candidate_action(db, request_id, actor)
    role = request.role
    nomination_id = request.nomination_id

    config = await ConfigStore(db).get()
    cap = cap_for_role(config, role)
    counter = COUNTER_COLUMNS[role]

    transitioned = await db.execute(
        update(SupporterRequest)
        .where(SupporterRequest.id == request_id, SupporterRequest.status == SupporterStatus.pending)
        .values(status=SupporterStatus.accepted, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if transitioned.rowcount == 0:
        await db.rollback()
        raise ConflictError("Request has already been processed", code=ErrorCode.ALREADY_PROCESSED)

    incremented = await db.execute(
        update(Nomination)
        .where(Nomination.id == nomination_id, counter < cap)
        .values({counter: counter + 1, Nomination.updated_at: datetime.utcnow()})
        .execution_options(synchronize_session=False)
    )
    if incremented.rowcount == 0:
        await db.rollback()
        logger.info(f"Supporter request {request_id} refused: {role.value} cap {cap} reached")
        raise CapacityExceededError(role.value, cap)

    await db.commit()
    await db.refresh(request)

    logger.info(f"Supporter request {request_id} accepted by {actor.id}")
    await log_activity(db, ActionType.SUPPORTER_ACCEPTED, actor_id=actor.id,
                       details={"supporter_request_id": request_id, "role": role.value})
    return request


async def reject_request(db: AsyncSession, request_id: str, actor: User) -> SupporterRequest:
    """Reject a pending request. No capacity check."""
    request = await _load_for_candidate_action(db, request_id, actor)

    transitioned = await db.execute(
        update(SupporterRequest)
        .where(SupporterRequest.id == request_id, SupporterRequest.status == SupporterStatus.pending)
        .values(status=SupporterStatus.rejected, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if transitioned.rowcount == 0:
        await db.rollback()
        raise ConflictError("Request has already been processed", code=ErrorCode.ALREADY_PROCESSED)

    await db.commit()
    await db.refresh(request)

    logger.info(f"Supporter request {request_id} rejected by {actor.id}")
    await log_activity(db, ActionType.SUPPORTER_REJECTED, actor_id=actor.id,
                       details={"supporter_request_id": request_id, "role": request.role.value})
    return request


async def respond_to_request(db: AsyncSession, request_id: str, actor: User, action: str) -> SupporterRequest:
    if action == "accept":
        return await accept_request(db, request_id, actor)
    if action == "reject":
        return await reject_request(db, request_id, actor)
    raise BadRequestError(f"Invalid action '{action}'. Use one of: {', '.join(RESPOND_ACTIONS)}")


# =============================================================================
# Reads
# =============================================================================

async def list_for_candidate(db: AsyncSession, candidate_id: str) -> List[Tuple[SupporterRequest, User]]:
    """Requests addressed to a candidate with the requesting students, newest first."""
    result = await db.execute(
        select(SupporterRequest, User)
        .join(User, User.id == SupporterRequest.student_id)
        .where(SupporterRequest.candidate_id == candidate_id)
        .order_by(SupporterRequest.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_for_student(db: AsyncSession, student_id: str) -> List[Tuple[SupporterRequest, User]]:
    """A student's own requests with the target candidates, newest first."""
    result = await db.execute(
        select(SupporterRequest, User)
        .join(User, User.id == SupporterRequest.candidate_id)
        .where(SupporterRequest.student_id == student_id)
        .order_by(SupporterRequest.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]
