from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.core.correlation import get_correlation_id, get_request_id
from ple_platform.core.logging import get_logger
from ple_platform.models import ActionAuditLog
from ple_platform.models.user import User

logger = get_logger("services.audit")


class AuditService:
    async def log_action(
        self,
        db: AsyncSession,
        *,
        action: str,
        entity_type: str = "content",
        entity_id: Any = None,
        actor: User | None = None,
        reason: str | None = None,
        from_state: str | None = None,
        to_state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an activity row inside the caller's transaction; never fails the write."""
        try:
            async with db.begin_nested():
                db.add(
                    ActionAuditLog(
                        action=action,
                        entity_type=entity_type,
                        entity_id=str(entity_id) if entity_id is not None else None,
                        from_state=from_state,
                        to_state=to_state,
                        reason=reason,
                        details_json=details or {},
                        actor_user_id=actor.id if actor else None,
                        actor_name=actor.display_name if actor else None,
                        correlation_id=get_correlation_id() or None,
                        request_id=get_request_id() or None,
                    )
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "audit_log_failed",
                action=action,
                entity_type=entity_type,
                error=str(exc.__class__.__name__),
            )

    async def list_for_entity(
        self,
        db: AsyncSession,
        *,
        entity_id: Any,
        entity_type: str = "content",
        limit: int = 50,
        offset: int = 0,
    ) -> list[ActionAuditLog]:
        rows = await db.execute(
            select(ActionAuditLog)
            .where(
                ActionAuditLog.entity_type == entity_type,
                ActionAuditLog.entity_id == str(entity_id),
            )
            .order_by(ActionAuditLog.created_at.desc())
            .limit(max(1, min(limit, 100)))
            .offset(max(0, offset))
        )
        return list(rows.scalars().all())


audit_service = AuditService()
