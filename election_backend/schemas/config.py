"""
System Configuration API Schemas (Pydantic)

Deadline updates are partial: only fields present in the request body are
written, and an explicit null clears that bound (closing the window).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.supporter_request import SupporterRole


class DeadlinesUpdate(BaseModel):
    nomination_start: Optional[datetime] = None
    nomination_end: Optional[datetime] = None
    proposer_seconder_start: Optional[datetime] = None
    proposer_seconder_end: Optional[datetime] = None
    campaigner_start: Optional[datetime] = None
    campaigner_end: Optional[datetime] = None
    manifesto_phase1_start: Optional[datetime] = None
    manifesto_phase1_end: Optional[datetime] = None
    manifesto_phase2_start: Optional[datetime] = None
    manifesto_phase2_end: Optional[datetime] = None
    manifesto_final_start: Optional[datetime] = None
    manifesto_final_end: Optional[datetime] = None


class LimitsUpdate(BaseModel):
    max_proposers: Optional[int] = Field(None, ge=0, le=1000)
    max_seconders: Optional[int] = Field(None, ge=0, le=1000)
    max_campaigners: Optional[int] = Field(None, ge=0, le=1000)

    def by_role(self):
        values = {
            SupporterRole.proposer: self.max_proposers,
            SupporterRole.seconder: self.max_seconders,
            SupporterRole.campaigner: self.max_campaigners,
        }
        return {role: value for role, value in values.items() if value is not None}


class ReviewerCredentials(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=128)


class ReviewerCredentialsUpdate(BaseModel):
    phase1: Optional[ReviewerCredentials] = None
    phase2: Optional[ReviewerCredentials] = None
    final: Optional[ReviewerCredentials] = None

    def by_phase(self):
        result = {}
        for phase in ManifestoPhase:
            creds = getattr(self, phase.value)
            if creds is not None:
                result[phase] = creds.model_dump(exclude_none=True)
        return result


class ConfigPatch(BaseModel):
    """Combined update used by PATCH /superadmin/config."""
    deadlines: Optional[DeadlinesUpdate] = None
    limits: Optional[LimitsUpdate] = None
    reviewers: Optional[ReviewerCredentialsUpdate] = None


class LockPhaseRequest(BaseModel):
    phase: ManifestoPhase


class CreateAdminRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
