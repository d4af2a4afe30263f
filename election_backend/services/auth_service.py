"""
Auth Service

Registration is two-step: `register` mails a 6-digit code to an
institutional address, `verify_otp` checks the latest code for that address
and creates the account. Password reset follows the same pattern.

Codes are stored hashed and expire after OTP_EXPIRE_MINUTES.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.config.settings import settings
from election_backend.errors import (
    BadRequestError, ConflictError, ErrorCode, NotFoundError, UnauthorizedError
)
from election_backend.orm.activity_log import ActionType
from election_backend.orm.otp import OTP, OTPPurpose
from election_backend.orm.user import User, UserRole
from election_backend.rbac import create_access_token, hash_password_async, verify_password_async
from election_backend.services.activity_logger import log_activity
from election_backend.services.notification_service import Notifier

logger = logging.getLogger(__name__)


def generate_otp_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def check_institution_email(email: str) -> str:
    email = email.strip().lower()
    domain = settings.INSTITUTION_EMAIL_DOMAIN.lower()
    if not email.endswith(f"@{domain}"):
        raise BadRequestError(f"Email must be an institutional email (@{domain})")
    return email


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def _issue_otp(db: AsyncSession, notifier: Notifier, email: str, purpose: OTPPurpose) -> int:
    code = generate_otp_code()
    otp = OTP(
        email=email,
        code_hash=await hash_password_async(code),
        purpose=purpose,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        is_used=False,
    )
    db.add(otp)
    await db.commit()

    # Delivery failure surfaces as UnavailableError; the unused code simply expires
    await notifier.send_otp(email, code, purpose)
    return settings.OTP_EXPIRE_MINUTES


async def _consume_otp(db: AsyncSession, email: str, code: str, purpose: OTPPurpose) -> OTP:
    """
    Validate the most recent code for (email, purpose) and mark it used (not committed).
    A wrong guess is counted and committed; the code is spent after OTP_MAX_ATTEMPTS of them.
    """
    result = await db.execute(
        select(OTP)
        .where(OTP.email == email, OTP.purpose == purpose)
        .order_by(OTP.created_at.desc())
        .limit(1)
    )
    otp = result.scalar_one_or_none()

    if not otp or otp.is_used:
        raise BadRequestError("Invalid OTP request", code=ErrorCode.OTP_INVALID)

    if not await verify_password_async(code, otp.code_hash):
        otp.attempts = (otp.attempts or 0) + 1
        if otp.attempts >= settings.OTP_MAX_ATTEMPTS:
            otp.is_used = True
            logger.warning(f"OTP for {email} ({purpose.value}) spent after {otp.attempts} wrong attempts")
        await db.commit()
        raise BadRequestError("Invalid OTP", code=ErrorCode.OTP_INVALID)

    if datetime.utcnow() > otp.expires_at:
        raise BadRequestError("OTP expired", code=ErrorCode.OTP_EXPIRED)

    otp.is_used = True
    return otp


# =============================================================================
# Registration
# =============================================================================

async def register(db: AsyncSession, notifier: Notifier, email: str) -> int:
    """Send a verification code. Returns minutes until it expires."""
    email = check_institution_email(email)

    if await get_user_by_email(db, email):
        raise ConflictError("User with this email already exists", code=ErrorCode.ALREADY_EXISTS)

    return await _issue_otp(db, notifier, email, OTPPurpose.verification)


async def verify_otp_and_create_user(
    db: AsyncSession,
    email: str,
    code: str,
    password: str,
    name: str,
    roll_no: str,
    department: str,
    phone: str
) -> Tuple[User, str]:
    """Complete registration. Returns the new student and an access token."""
    email = check_institution_email(email)

    await _consume_otp(db, email, code, OTPPurpose.verification)

    if await get_user_by_email(db, email):
        raise ConflictError("User already registered", code=ErrorCode.ALREADY_EXISTS)

    result = await db.execute(select(User.id).where(User.roll_no == roll_no))
    if result.scalar_one_or_none():
        raise ConflictError("Roll number already exists", code=ErrorCode.ALREADY_EXISTS)

    user = User(
        email=email,
        password_hash=await hash_password_async(password),
        name=name,
        roll_no=roll_no,
        department=department,
        phone=phone,
        role=UserRole.student,
        is_verified=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email or roll number already exists", code=ErrorCode.ALREADY_EXISTS)

    logger.info(f"User {user.id} registered")
    await log_activity(db, ActionType.USER_REGISTERED, actor_id=user.id, details={"email": email})
    return user, create_access_token(user)


# =============================================================================
# Login & Password Reset
# =============================================================================

async def login(db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
    user = await get_user_by_email(db, email)
    if not user or not await verify_password_async(password, user.password_hash):
        raise UnauthorizedError("Invalid email or password", code=ErrorCode.AUTH_INVALID)
    return user, create_access_token(user)


async def forgot_password(db: AsyncSession, notifier: Notifier, email: str) -> int:
    user = await get_user_by_email(db, email)
    if not user:
        raise NotFoundError("User with this email")
    return await _issue_otp(db, notifier, user.email, OTPPurpose.reset)


async def reset_password(db: AsyncSession, email: str, code: str, new_password: str) -> None:
    email = email.strip().lower()
    await _consume_otp(db, email, code, OTPPurpose.reset)

    user = await get_user_by_email(db, email)
    if not user:
        raise NotFoundError("User")

    user.password_hash = await hash_password_async(new_password)
    await db.commit()

    logger.info(f"Password reset for user {user.id}")
    await log_activity(db, ActionType.PASSWORD_RESET, actor_id=user.id)


# =============================================================================
# Profile
# =============================================================================

async def update_profile(
    db: AsyncSession,
    user: User,
    name: Optional[str] = None,
    department: Optional[str] = None,
    phone: Optional[str] = None
) -> User:
    if name:
        user.name = name
    if department:
        user.department = department
    if phone:
        user.phone = phone
    await db.commit()
    return user


async def become_candidate(db: AsyncSession, user: User) -> User:
    """Upgrade a student to candidate."""
    if user.role == UserRole.candidate:
        raise BadRequestError("You are already a candidate")
    if user.role != UserRole.student:
        raise BadRequestError(f"A {user.role.value} account cannot become a candidate")

    user.role = UserRole.candidate
    await db.commit()

    logger.info(f"User {user.id} became a candidate")
    await log_activity(db, ActionType.BECAME_CANDIDATE, actor_id=user.id)
    return user
