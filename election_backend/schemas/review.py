"""
Reviewer API Schemas (Pydantic)
"""
from pydantic import BaseModel, Field, field_validator

from election_backend.orm.manifesto import ManifestoPhase


class ReviewerLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    phase: ManifestoPhase


class CommentCreate(BaseModel):
    """Request schema for a reviewer comment."""
    manifesto_id: str = Field(..., min_length=1, max_length=36)
    comment: str = Field(..., min_length=1, max_length=5000)

    @field_validator('comment')
    @classmethod
    def sanitize_comment(cls, v):
        """Basic XSS prevention."""
        v = v.replace('<script>', '').replace('</script>', '').strip()
        if not v:
            raise ValueError("Comment cannot be empty")
        return v
