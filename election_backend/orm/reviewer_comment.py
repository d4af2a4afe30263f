"""
election_backend/orm/reviewer_comment.py
Append-only reviewer remarks on a manifesto.
"""
from sqlalchemy import Column, String, Text, ForeignKey, Enum as SQLEnum

from election_backend.orm.base import BaseModel
from election_backend.orm.manifesto import ManifestoPhase


class ReviewerComment(BaseModel):
    __tablename__ = "reviewer_comments"

    manifesto_id = Column(
        String(36),
        ForeignKey("manifestos.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    reviewer_id = Column(String(100), nullable=False)
    reviewer_name = Column(String(200), nullable=False)
    phase = Column(SQLEnum(ManifestoPhase), nullable=False)
    content = Column(Text, nullable=False)

    def __repr__(self):
        return f"<ReviewerComment(manifesto={self.manifesto_id}, reviewer={self.reviewer_id})>"

    def to_dict(self):
        return {
            "id": self.id,
            "manifesto_id": self.manifesto_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_name": self.reviewer_name,
            "phase": self.phase.value,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
