"""
Nomination API Schemas (Pydantic)
"""
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from election_backend.orm.nomination import NominationStatus


class NominationCreate(BaseModel):
    """Request schema for creating a nomination."""
    positions: List[str] = Field(..., min_length=1)
    score: Optional[float] = Field(None, ge=0, le=10)

    @field_validator('positions')
    @classmethod
    def clean_positions(cls, v):
        cleaned = [p.strip() for p in v if p and p.strip()]
        if not cleaned:
            raise ValueError("At least one position is required")
        return cleaned


class NominationUpdate(BaseModel):
    """Partial edit. Omitted fields are left unchanged."""
    positions: Optional[List[str]] = Field(None, min_length=1)
    score: Optional[float] = Field(None, ge=0, le=10)
    is_locked: Optional[bool] = None

    @field_validator('positions')
    @classmethod
    def clean_positions(cls, v):
        if v is None:
            return v
        cleaned = [p.strip() for p in v if p and p.strip()]
        if not cleaned:
            raise ValueError("At least one position is required")
        return cleaned


class StatusUpdate(BaseModel):
    status: NominationStatus


class CandidateStatusUpdate(BaseModel):
    """Admin status change keyed by candidate rather than nomination."""
    candidate_id: str = Field(..., min_length=1, max_length=36)
    status: NominationStatus
