"""
Authentication API Schemas (Pydantic)
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Step one of registration: request a code for an institutional address."""
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    """Step two of registration: prove the code and create the account."""
    email: EmailStr
    otp: str = Field(..., pattern=r'^[0-9]{6}$')
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    roll_no: str = Field(..., min_length=1, max_length=50)
    department: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., pattern=r'^[0-9]{10}$')

    @field_validator('name', 'roll_no', 'department')
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LoginRequest(BaseModel):
    """JSON login schema"""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r'^[0-9]{6}$')
    new_password: str = Field(..., min_length=6, max_length=128)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    department: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, pattern=r'^[0-9]{10}$')


class TokenResponse(BaseModel):
    """Token response schema with the user it was issued for."""
    access_token: str
    token_type: str = "bearer"
    user: dict


class OTPSentResponse(BaseModel):
    success: bool = True
    message: str
    expires_in_minutes: int
