"""
election_backend/orm/nomination.py
A candidate's nomination. One per user.

The per-role counters mirror count(accepted supporter requests) and are the
column the capacity check increments conditionally.
"""
import enum

from sqlalchemy import Column, String, Float, Boolean, Integer, ForeignKey, Enum as SQLEnum

from election_backend.core.db_types import UniversalJSON
from election_backend.orm.base import BaseModel


class NominationStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class Nomination(BaseModel):
    __tablename__ = "nominations"

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    positions = Column(UniversalJSON, nullable=False, default=list)
    score = Column(Float, nullable=True)
    status = Column(SQLEnum(NominationStatus), nullable=False, default=NominationStatus.pending, index=True)
    is_locked = Column(Boolean, nullable=False, default=False)

    proposer_count = Column(Integer, nullable=False, default=0)
    seconder_count = Column(Integer, nullable=False, default=0)
    campaigner_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Nomination(id={self.id}, user={self.user_id}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "positions": list(self.positions or []),
            "score": self.score,
            "status": self.status.value if self.status else None,
            "is_locked": self.is_locked,
            "proposer_count": self.proposer_count,
            "seconder_count": self.seconder_count,
            "campaigner_count": self.campaigner_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
