"""
PLE Platform - Authentication Routes
====================================
Bearer-token login and the identity dependencies used by every router.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.api.envelope import success_envelope
from ple_platform.core.database import get_db
from ple_platform.core.errors import NotAuthenticated, NotAuthorized
from ple_platform.core.logging import get_logger
from ple_platform.core.security import create_access_token, decode_access_token, verify_password
from ple_platform.models.user import User
from ple_platform.repositories.content_repository import parse_uuid
from ple_platform.schemas.auth import LoginRequest, TokenResponse, UserProfile
from ple_platform.services.audit_service import audit_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("auth")
security = HTTPBearer(auto_error=False)


async def _user_from_credentials(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
) -> User | None:
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload:
        return None
    user_id = parse_uuid(payload.get("sub"))
    if user_id is None:
        return None
    user = await db.scalar(select(User).where(User.id == user_id))
    if not user or not user.is_active:
        return None
    return user


# -- Dependency: current user --
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await _user_from_credentials(credentials, db)
    if user is None:
        raise NotAuthenticated("Invalid or expired token" if credentials else "Authentication required")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Anonymous (None) when the token is missing or no longer valid."""
    return await _user_from_credentials(credentials, db)


# -- Login --
@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    email = request.email.strip().lower()
    user = await db.scalar(select(User).where(func.lower(User.email) == email))

    if not user or not verify_password(request.password, user.hashed_password):
        logger.warning("login_failed", email=email)
        raise NotAuthenticated("Invalid email or password")

    if not user.is_active:
        raise NotAuthorized("Account is disabled")

    await db.execute(
        update(User).where(User.id == user.id).values(last_login_at=datetime.now(timezone.utc))
    )
    await audit_service.log_action(db, action="auth_login", entity_type="user", entity_id=user.id, actor=user)
    await db.commit()
    await db.refresh(user)

    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    logger.info("login_success", user_id=str(user.id), role=user.role.value)
    body = TokenResponse(access_token=token, user=UserProfile.model_validate(user))
    return success_envelope(body.model_dump(mode="json"))


# -- Current user --
@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return success_envelope(UserProfile.model_validate(current_user).model_dump(mode="json"))
