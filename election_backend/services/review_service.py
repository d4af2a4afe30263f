"""
Review Service

Reviewers are not user accounts: each manifesto phase has one shared login
held in the system config. A reviewer token is bound to its phase, and
reviewers only see and comment on manifestos of that phase.

Comments are append-only; there is no edit or delete path.
"""
import logging
from typing import Dict, Any, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.errors import ErrorCode, ForbiddenError, UnauthorizedError
from election_backend.orm.activity_log import ActionType
from election_backend.orm.manifesto import Manifesto, ManifestoPhase
from election_backend.orm.nomination import Nomination
from election_backend.orm.reviewer_comment import ReviewerComment
from election_backend.orm.user import User
from election_backend.rbac import ReviewerIdentity, create_reviewer_token, verify_password_async
from election_backend.services.activity_logger import log_activity
from election_backend.services.config_store import ConfigStore, reviewer_credentials
from election_backend.services.manifesto_service import get_manifesto
from election_backend.services.nomination_service import owner_summary

logger = logging.getLogger(__name__)


async def reviewer_login(db: AsyncSession, username: str, password: str, phase: ManifestoPhase) -> str:
    """Check the phase's reviewer credentials and issue a reviewer token."""
    config = await ConfigStore(db).get()
    creds = reviewer_credentials(config, phase)

    valid_user = username == creds.get("username")
    valid_password = await verify_password_async(password, creds.get("password_hash") or "")
    if not (valid_user and valid_password):
        logger.warning(f"Failed reviewer login for {username!r} on {phase.value}")
        raise UnauthorizedError("Invalid credentials", code=ErrorCode.AUTH_INVALID)

    await log_activity(db, ActionType.REVIEWER_LOGIN, details={"username": username, "phase": phase.value})
    return create_reviewer_token(username, phase)


async def list_comments(db: AsyncSession, manifesto_id: str) -> List[ReviewerComment]:
    """Newest first."""
    result = await db.execute(
        select(ReviewerComment)
        .where(ReviewerComment.manifesto_id == manifesto_id)
        .order_by(ReviewerComment.created_at.desc())
    )
    return list(result.scalars().all())


async def list_for_phase(db: AsyncSession, phase: ManifestoPhase) -> List[Dict[str, Any]]:
    """Manifestos of one phase, newest first, each with candidate and comments."""
    result = await db.execute(
        select(Manifesto, User)
        .join(Nomination, Nomination.id == Manifesto.nomination_id)
        .join(User, User.id == Nomination.user_id)
        .where(Manifesto.phase == phase)
        .order_by(Manifesto.created_at.desc())
    )
    rows = result.all()

    comments_by_manifesto: Dict[str, List[Dict[str, Any]]] = {}
    if rows:
        comment_result = await db.execute(
            select(ReviewerComment)
            .where(ReviewerComment.manifesto_id.in_([row[0].id for row in rows]))
            .order_by(ReviewerComment.created_at.desc())
        )
        for comment in comment_result.scalars().all():
            comments_by_manifesto.setdefault(comment.manifesto_id, []).append(comment.to_dict())

    items = []
    for manifesto, owner in rows:
        data = manifesto.to_dict()
        data["candidate"] = owner_summary(owner)
        data["comments"] = comments_by_manifesto.get(manifesto.id, [])
        items.append(data)
    return items


async def add_comment(
    db: AsyncSession,
    manifesto_id: str,
    reviewer: ReviewerIdentity,
    content: str
) -> ReviewerComment:
    """
    Raises:
        NotFoundError: manifesto absent
        ForbiddenError: manifesto belongs to another phase
    """
    manifesto = await get_manifesto(db, manifesto_id)
    if manifesto.phase != reviewer.phase:
        logger.warning(
            f"Reviewer {reviewer.username} ({reviewer.phase.value}) tried to comment on "
            f"{manifesto.phase.value} manifesto {manifesto_id}"
        )
        raise ForbiddenError(
            "You can only comment on manifestos for your assigned phase",
            code=ErrorCode.SCOPE_VIOLATION
        )

    comment = ReviewerComment(
        manifesto_id=manifesto.id,
        reviewer_id=reviewer.username,
        reviewer_name=reviewer.username,
        phase=reviewer.phase,
        content=content,
    )
    db.add(comment)
    await db.commit()

    await log_activity(db, ActionType.REVIEWER_COMMENT_ADDED,
                       details={"manifesto_id": manifesto.id, "reviewer": reviewer.username,
                                "phase": reviewer.phase.value})
    return comment
