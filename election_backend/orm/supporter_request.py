"""
election_backend/orm/supporter_request.py
A student's request to back a candidate in one supporter role.
"""
import enum

from sqlalchemy import Column, String, ForeignKey, UniqueConstraint, Index, Enum as SQLEnum

from election_backend.orm.base import BaseModel


class SupporterRole(str, enum.Enum):
    proposer = "proposer"
    seconder = "seconder"
    campaigner = "campaigner"


class SupporterStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class SupporterRequest(BaseModel):
    __tablename__ = "supporter_requests"
    __table_args__ = (
        UniqueConstraint("student_id", "nomination_id", "role", name="uq_supporter_student_nomination_role"),
        Index("ix_supporter_nomination_role_status", "nomination_id", "role", "status"),
    )

    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    candidate_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    nomination_id = Column(String(36), ForeignKey("nominations.id", ondelete="CASCADE"), nullable=False)

    role = Column(SQLEnum(SupporterRole), nullable=False)
    status = Column(SQLEnum(SupporterStatus), nullable=False, default=SupporterStatus.pending)

    def __repr__(self):
        return f"<SupporterRequest(id={self.id}, role={self.role}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "candidate_id": self.candidate_id,
            "nomination_id": self.nomination_id,
            "role": self.role.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
