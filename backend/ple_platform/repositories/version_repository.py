from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.core.errors import Conflict
from ple_platform.models import ChangeKind, ContentItem, ContentVersion


class VersionRepository:
    """Append-only archive of prior title/body states."""

    async def snapshot_before_update(
        self,
        db: AsyncSession,
        item: ContentItem,
        *,
        changed_by: uuid.UUID | None,
        change_summary: str | None = None,
        change_kind: ChangeKind = ChangeKind.edit,
    ) -> ContentVersion:
        content_id, version_number = item.id, item.version
        snapshot = ContentVersion(
            content_id=content_id,
            version_number=version_number,
            title=item.title,
            body=item.body,
            changed_by=changed_by,
            change_summary=change_summary,
            change_kind=ChangeKind(change_kind).value,
        )
        try:
            # Savepoint keeps the caller's transaction usable after a duplicate key.
            async with db.begin_nested():
                db.add(snapshot)
        except IntegrityError as exc:
            raise Conflict(
                "Content was modified by another request",
                details={"content_id": str(content_id), "version": version_number},
            ) from exc
        return snapshot

    async def get_snapshot(
        self, db: AsyncSession, content_id: uuid.UUID, version_number: int
    ) -> ContentVersion | None:
        row = await db.execute(
            select(ContentVersion).where(
                ContentVersion.content_id == content_id,
                ContentVersion.version_number == version_number,
            )
        )
        return row.scalar_one_or_none()

    async def list_versions(self, db: AsyncSession, content_id: uuid.UUID) -> list[ContentVersion]:
        rows = await db.execute(
            select(ContentVersion)
            .where(ContentVersion.content_id == content_id)
            .order_by(ContentVersion.version_number.desc())
        )
        return list(rows.scalars().all())

    async def count_versions(self, db: AsyncSession, content_id: uuid.UUID) -> int:
        total = await db.scalar(
            select(func.count(ContentVersion.id)).where(ContentVersion.content_id == content_id)
        )
        return int(total or 0)


version_repository = VersionRepository()
