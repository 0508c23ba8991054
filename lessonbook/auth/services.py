import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.models import User
from lessonbook.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from lessonbook.auth.security import create_access_token, hash_password, verify_password
from lessonbook.core.config import settings
from lessonbook.core.enums import UserRole
from lessonbook.core.exceptions import AuthenticationError, ServiceError, UnauthorizedError

logger = logging.getLogger(__name__)


def _is_allowed_admin_email(email: str) -> bool:
    return email.strip().lower() == settings.admin_email.strip().lower()


def login_refusal_reason(user: User) -> Optional[str]:
    """Why this account may not authenticate, or None when it may.

    Checked independently of the password so that archived, deactivated and
    non allow-listed admin accounts are refused even with valid credentials.
    """
    if not user.is_active:
        return "inactive"
    if user.archived_at is not None:
        return "archived"
    if user.role == UserRole.ADMIN.value and not _is_allowed_admin_email(user.email):
        return "admin_not_allowed"
    return None


async def register_user(db: AsyncSession, payload: RegisterRequest) -> RegisterResponse:
    if payload.role == UserRole.ADMIN and not _is_allowed_admin_email(payload.email):
        raise UnauthorizedError("This email address cannot be registered as an administrator")

    existing = await db.execute(select(User.id).where(func.lower(User.email) == payload.email.lower()))
    if existing.scalar_one_or_none():
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)

    user = User(
        full_name=payload.full_name.strip(),
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        bio=payload.bio or None,
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT) from e
    await db.refresh(user)
    logger.info("user_registered user_id=%s role=%s", user.id, user.role)
    return RegisterResponse(success=True, message="Account created successfully", user_id=user.id)


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find user by email (case-insensitive)
    result = await db.execute(select(User).where(func.lower(User.email) == payload.email.lower()))
    user: Optional[User] = result.scalar_one_or_none()
    if not user:
        raise AuthenticationError("Invalid email or password")

    # 2. Lifecycle gate before the password, so the answer does not depend on it
    reason = login_refusal_reason(user)
    if reason is not None:
        logger.warning("login_refused user_id=%s reason=%s", user.id, reason)
        if reason in ("inactive", "archived"):
            raise AuthenticationError("This account is disabled. Please contact the administrator.")
        raise AuthenticationError("Invalid email or password")

    # 3. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "user_id": str(user.id),
            "role": user.role,
            "iat": int(issued_at.timestamp()),
        }
    )
    return LoginResponse(
        access_token=access_token,
        user=UserInfo(id=user.id, name=user.full_name, email=user.email, role=user.role),
        issued_at=issued_at,
    )

