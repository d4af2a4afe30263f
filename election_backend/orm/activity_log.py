"""
election_backend/orm/activity_log.py
Immutable audit trail of lifecycle mutations.

Logs are append-only and read-only.
"""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum

from election_backend.core.db_types import UniversalJSON, new_uuid
from election_backend.orm.base import Base


class ActionType(str, PyEnum):
    """Types of actions that can be logged"""
    # Accounts
    USER_REGISTERED = "user_registered"
    PASSWORD_RESET = "password_reset"
    BECAME_CANDIDATE = "became_candidate"
    ADMIN_CREATED = "admin_created"

    # Nominations
    NOMINATION_CREATED = "nomination_created"
    NOMINATION_UPDATED = "nomination_updated"
    NOMINATION_LOCKED = "nomination_locked"
    NOMINATION_STATUS_CHANGED = "nomination_status_changed"

    # Supporters
    SUPPORTER_REQUESTED = "supporter_requested"
    SUPPORTER_ACCEPTED = "supporter_accepted"
    SUPPORTER_REJECTED = "supporter_rejected"

    # Manifestos
    MANIFESTO_UPLOADED = "manifesto_uploaded"
    MANIFESTO_REPLACED = "manifesto_replaced"
    MANIFESTO_DELETED = "manifesto_deleted"
    MANIFESTO_LOCKED = "manifesto_locked"

    # Review
    REVIEWER_LOGIN = "reviewer_login"
    REVIEWER_COMMENT_ADDED = "reviewer_comment_added"

    # Configuration
    CONFIG_UPDATED = "config_updated"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=new_uuid)

    # Null for reviewer and system actions
    actor_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    action = Column(SQLEnum(ActionType), nullable=False, index=True)
    details = Column(UniversalJSON, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog({self.action.value}, actor={self.actor_id})>"

    def to_dict(self):
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action.value,
            "details": self.details or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
