"""
election_backend/orm/manifesto.py
Manifesto PDF per (nomination, phase). Re-uploads update the row in place.
"""
import enum
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum

from election_backend.orm.base import BaseModel


class ManifestoPhase(str, enum.Enum):
    phase1 = "phase1"
    phase2 = "phase2"
    final = "final"


class ManifestoStatus(str, enum.Enum):
    submitted = "submitted"
    locked = "locked"


class Manifesto(BaseModel):
    __tablename__ = "manifestos"
    __table_args__ = (
        UniqueConstraint("nomination_id", "phase", name="uq_manifesto_nomination_phase"),
    )

    nomination_id = Column(
        String(36),
        ForeignKey("nominations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    phase = Column(SQLEnum(ManifestoPhase), nullable=False, index=True)

    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    storage_id = Column(String(500), nullable=False)

    status = Column(SQLEnum(ManifestoStatus), nullable=False, default=ManifestoStatus.submitted)
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_locked(self) -> bool:
        return self.status == ManifestoStatus.locked

    def __repr__(self):
        return f"<Manifesto(id={self.id}, nomination={self.nomination_id}, phase={self.phase})>"

    def to_dict(self):
        return {
            "id": self.id,
            "nomination_id": self.nomination_id,
            "phase": self.phase.value,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "status": self.status.value,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
