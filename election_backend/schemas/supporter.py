"""
Supporter API Schemas (Pydantic)
"""
from typing import Literal

from pydantic import BaseModel, Field

from election_backend.orm.supporter_request import SupporterRole


class SupporterRequestCreate(BaseModel):
    candidate_id: str = Field(..., min_length=1, max_length=36)
    role: SupporterRole


class RespondRequest(BaseModel):
    supporter_id: str = Field(..., min_length=1, max_length=36)
    action: Literal["accept", "reject"]
