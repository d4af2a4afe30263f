"""
election_backend/services/activity_logger.py
Centralized activity logging service

Call `log_activity()` AFTER the primary mutation has been committed.
Logs are append-only and read-only. No edits, no deletions.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.orm.activity_log import ActivityLog, ActionType

logger = logging.getLogger(__name__)


async def log_activity(
    db: AsyncSession,
    action: ActionType,
    actor_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Optional[ActivityLog]:
    """
    Append an audit record.

    The entry is written through its own session on the caller's bind, so a
    failure here is logged and discarded without touching the caller's
    session or the action being recorded.

    Example usage:
        await log_activity(
            db,
            ActionType.NOMINATION_CREATED,
            actor_id=current_user.id,
            details={"nomination_id": nomination.id}
        )

    Returns:
        The created ActivityLog, or None if logging failed
    """
    try:
        log_entry = ActivityLog(
            actor_id=actor_id,
            action=action,
            details=jsonable_encoder(details) if details else None,
            timestamp=datetime.utcnow()
        )

        async with AsyncSession(bind=db.bind, expire_on_commit=False) as log_session:
            log_session.add(log_entry)
            await log_session.commit()

        logger.debug(f"Activity logged: {action.value} by {actor_id}")

        return log_entry

    except Exception as e:
        # Audit logging never fails the main operation
        logger.warning(f"Failed to log activity {action.value}: {e}")
        return None


async def list_activity(
    db: AsyncSession,
    limit: int = 100,
    action: Optional[ActionType] = None,
    actor_id: Optional[str] = None
) -> List[ActivityLog]:
    """Newest first."""
    query = select(ActivityLog)
    if action is not None:
        query = query.where(ActivityLog.action == action)
    if actor_id is not None:
        query = query.where(ActivityLog.actor_id == actor_id)
    query = query.order_by(ActivityLog.timestamp.desc()).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
