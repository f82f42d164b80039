from __future__ import annotations

from collections.abc import Iterable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.api.routes.auth import get_current_user
from ple_platform.core.database import get_db
from ple_platform.core.errors import NotAuthorized
from ple_platform.models.user import User, UserRole
from ple_platform.services.content_service import ContentService


def enforce_roles(
    user: User,
    allowed: Iterable[UserRole],
    *,
    message: str = "Not authorized for this action",
) -> None:
    if user.role not in set(allowed):
        raise NotAuthorized(message)


def require_roles(*allowed: UserRole):
    async def _dependency(current_user: User = Depends(get_current_user)) -> User:
        enforce_roles(current_user, allowed)
        return current_user

    return _dependency


def get_content_service(db: AsyncSession = Depends(get_db)) -> ContentService:
    return ContentService(db)
