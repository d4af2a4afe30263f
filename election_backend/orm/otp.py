"""
election_backend/orm/otp.py
One-time passcodes for email verification and password reset.
Only the most recent row per email is ever checked.
"""
import enum
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum as SQLEnum

from election_backend.orm.base import BaseModel


class OTPPurpose(str, enum.Enum):
    verification = "verification"
    reset = "reset"


class OTP(BaseModel):
    __tablename__ = "otps"

    email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)
    purpose = Column(SQLEnum(OTPPurpose), nullable=False, default=OTPPurpose.verification)
    expires_at = Column(DateTime, nullable=False, index=True)
    is_used = Column(Boolean, default=False, nullable=False)
    # Wrong guesses against this code; it is spent once OTP_MAX_ATTEMPTS is reached
    attempts = Column(Integer, default=0, nullable=False)

    def is_valid(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return not self.is_used and now <= self.expires_at

    def __repr__(self):
        return f"<OTP(email={self.email}, purpose={self.purpose}, used={self.is_used})>"
