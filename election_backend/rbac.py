"""
election_backend/rbac.py
Role-Based Access Control

Two token families share one signing key:
- user access tokens: {"sub": user_id, "role": ..., "type": "access"}
- reviewer tokens:    {"sub": username, "phase": ..., "type": "reviewer"}
Each family is rejected by the other's dependencies.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.config.settings import settings
from election_backend.database import get_db
from election_backend.errors import ErrorCode, ForbiddenError, UnauthorizedError
from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.user import User, UserRole

logger = logging.getLogger(__name__)

# ================= CONFIG =================

SECRET_KEY = settings.JWT_SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM

ACCESS_TOKEN_TYPE = "access"
REVIEWER_TOKEN_TYPE = "reviewer"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=10,
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

# ================= ROLES =================

ADMIN_ROLES = [UserRole.admin, UserRole.superadmin]

# ================= PASSWORDS =================


def normalize_password(password: str) -> str:
    """
    bcrypt only supports 72 bytes.
    Truncate AFTER UTF-8 encoding so hashing and verifying agree.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        encoded = encoded[:72]
    return encoded.decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(normalize_password(password))


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(normalize_password(plain), hashed)
    except (ValueError, TypeError):
        return False


async def hash_password_async(password: str) -> str:
    """Hash password in thread pool to avoid blocking"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, hash_password, password)


async def verify_password_async(plain: str, hashed: str) -> bool:
    """Verify password in thread pool to avoid blocking"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, verify_password, plain, hashed)

# ================= TOKEN UTILS =================


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token carrying user id and role"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user.id),
        "role": user.role.value,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_reviewer_token(username: str, phase: ManifestoPhase, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived reviewer token bound to one manifesto phase"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.REVIEWER_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": username,
        "username": username,
        "phase": phase.value,
        "exp": expire,
        "type": REVIEWER_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate JWT token. Returns None for a malformed or forged
    token; an expired one raises UnauthorizedError(AUTH_EXPIRED).
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", code=ErrorCode.AUTH_EXPIRED)
    except JWTError:
        return None

# ================= AUTH DEPENDENCIES =================


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT access token.
    Returns 401 if token is invalid or expired, or is not an access token.
    """
    credentials_exception = UnauthorizedError("Invalid token", code=ErrorCode.AUTH_INVALID)

    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise credentials_exception

    return user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory: Require specific role(s).
    Usage: current_user: User = Depends(require_role([UserRole.admin, UserRole.superadmin]))
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                f"Access denied: User {current_user.id} with role {current_user.role} "
                f"attempted to access resource requiring {allowed_roles}"
            )
            raise ForbiddenError(
                f"This action requires one of: {[r.value for r in allowed_roles]}",
                code=ErrorCode.PERMISSION_DENIED,
                details={"current_role": current_user.role.value}
            )
        return current_user
    return dependency


require_admin = require_role(ADMIN_ROLES)
require_superadmin = require_role([UserRole.superadmin])
require_candidate = require_role([UserRole.candidate])


@dataclass(frozen=True)
class ReviewerIdentity:
    username: str
    phase: ManifestoPhase


async def get_current_reviewer(token: str = Depends(oauth2_scheme)) -> ReviewerIdentity:
    """Resolve a reviewer token. User access tokens are rejected."""
    payload = decode_token(token)
    if not payload or payload.get("type") != REVIEWER_TOKEN_TYPE:
        raise UnauthorizedError("Invalid reviewer token", code=ErrorCode.AUTH_INVALID)

    try:
        phase = ManifestoPhase(payload.get("phase"))
    except ValueError:
        raise UnauthorizedError("Invalid reviewer token", code=ErrorCode.AUTH_INVALID)

    username = payload.get("username") or payload.get("sub")
    if not username:
        raise UnauthorizedError("Invalid reviewer token", code=ErrorCode.AUTH_INVALID)

    return ReviewerIdentity(username=username, phase=phase)
