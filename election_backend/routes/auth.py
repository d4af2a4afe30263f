"""
election_backend/routes/auth.py
Registration (email OTP), login, password reset and profile routes
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.core.rate_limit import limiter
from election_backend.database import get_db
from election_backend.orm.user import User
from election_backend.rbac import create_access_token, get_current_user
from election_backend.schemas.auth import (
    ForgotPasswordRequest, LoginRequest, OTPSentResponse, ProfileUpdate, RegisterRequest,
    ResetPasswordRequest, TokenResponse, VerifyOTPRequest
)
from election_backend.services import auth_service
from election_backend.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=OTPSentResponse)
@limiter.limit("10/minute")
async def register(
    request: Request,  # Required by slowapi
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Send a verification code to an institutional email address."""
    logger.info(f"Registration requested for {body.email}")
    minutes = await auth_service.register(db, notifier, body.email)
    return {
        "success": True,
        "message": "OTP sent to your email",
        "expires_in_minutes": minutes,
    }


@router.post("/verify-otp", response_model=TokenResponse, status_code=201)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,  # Required by slowapi
    body: VerifyOTPRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check the code and create the student account."""
    user, token = await auth_service.verify_otp_and_create_user(
        db,
        email=body.email,
        code=body.otp,
        password=body.password,
        name=body.name,
        roll_no=body.roll_no,
        department=body.department,
        phone=body.phone,
    )
    return {"access_token": token, "token_type": "bearer", "user": user.to_dict()}


@router.post("/login", response_model=TokenResponse)
@limiter.limit("30/minute")
async def login(
    request: Request,  # Required by slowapi
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    logger.info(f"Login attempt for email: {credentials.email}")
    user, token = await auth_service.login(db, credentials.email, credentials.password)
    logger.info(f"User logged in: {user.id} as {user.role.value}")
    return {"access_token": token, "token_type": "bearer", "user": user.to_dict()}


@router.post("/forgot-password", response_model=OTPSentResponse)
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,  # Required by slowapi
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    minutes = await auth_service.forgot_password(db, notifier, body.email)
    return {
        "success": True,
        "message": "Password reset OTP sent to your email",
        "expires_in_minutes": minutes,
    }


@router.post("/reset-password")
@limiter.limit("10/minute")
async def reset_password(
    request: Request,  # Required by slowapi
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, body.email, body.otp, body.new_password)
    return {"success": True, "message": "Password reset successfully"}


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": current_user.to_dict()}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.update_profile(
        db, current_user, name=body.name, department=body.department, phone=body.phone
    )
    return {"success": True, "message": "Profile updated successfully", "user": user.to_dict()}


@router.post("/become-candidate")
async def become_candidate(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Upgrade the current student to candidate.
    A fresh token is returned because the role claim changes.
    """
    user = await auth_service.become_candidate(db, current_user)
    return {
        "success": True,
        "message": "You are now a candidate",
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": user.to_dict(),
    }
