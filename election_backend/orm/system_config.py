"""
election_backend/orm/system_config.py
Singleton row holding election windows, supporter caps and reviewer logins.

A null bound on any window means that window is closed.
"""
from sqlalchemy import Column, Integer, DateTime

from election_backend.core.db_types import UniversalJSON
from election_backend.orm.base import BaseModel

DEFAULT_MAX_PROPOSERS = 5
DEFAULT_MAX_SECONDERS = 5
DEFAULT_MAX_CAMPAIGNERS = 10

WINDOW_FIELDS = (
    "nomination_start", "nomination_end",
    "proposer_seconder_start", "proposer_seconder_end",
    "campaigner_start", "campaigner_end",
    "manifesto_phase1_start", "manifesto_phase1_end",
    "manifesto_phase2_start", "manifesto_phase2_end",
    "manifesto_final_start", "manifesto_final_end",
)


class SystemConfig(BaseModel):
    __tablename__ = "system_config"

    nomination_start = Column(DateTime, nullable=True)
    nomination_end = Column(DateTime, nullable=True)

    proposer_seconder_start = Column(DateTime, nullable=True)
    proposer_seconder_end = Column(DateTime, nullable=True)

    campaigner_start = Column(DateTime, nullable=True)
    campaigner_end = Column(DateTime, nullable=True)

    manifesto_phase1_start = Column(DateTime, nullable=True)
    manifesto_phase1_end = Column(DateTime, nullable=True)
    manifesto_phase2_start = Column(DateTime, nullable=True)
    manifesto_phase2_end = Column(DateTime, nullable=True)
    manifesto_final_start = Column(DateTime, nullable=True)
    manifesto_final_end = Column(DateTime, nullable=True)

    max_proposers = Column(Integer, nullable=False, default=DEFAULT_MAX_PROPOSERS)
    max_seconders = Column(Integer, nullable=False, default=DEFAULT_MAX_SECONDERS)
    max_campaigners = Column(Integer, nullable=False, default=DEFAULT_MAX_CAMPAIGNERS)

    # {"username": ..., "password_hash": ...}
    phase1_reviewer = Column(UniversalJSON, nullable=False)
    phase2_reviewer = Column(UniversalJSON, nullable=False)
    final_reviewer = Column(UniversalJSON, nullable=False)

    def __repr__(self):
        return f"<SystemConfig(id={self.id})>"

    def to_dict(self):
        """Admin view. Reviewer password hashes are never exposed."""
        data = {}
        for field in WINDOW_FIELDS:
            value = getattr(self, field)
            data[field] = value.isoformat() if value else None
        data["max_proposers"] = self.max_proposers
        data["max_seconders"] = self.max_seconders
        data["max_campaigners"] = self.max_campaigners
        data["reviewers"] = {
            phase: {"username": (getattr(self, f"{phase}_reviewer") or {}).get("username")}
            for phase in ("phase1", "phase2", "final")
        }
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data
