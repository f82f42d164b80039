from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.models import ContentItem, ContentStatus, ContentVisibility, Tag, content_tags


@dataclass(slots=True)
class ContentFilters:
    statuses: list[ContentStatus] = field(default_factory=list)
    content_type: str | None = None
    author_id: uuid.UUID | None = None
    visibility: ContentVisibility | None = None
    tag_slug: str | None = None
    project_id: uuid.UUID | None = None
    search: str | None = None
    # Anonymous viewers: published and public rows only.
    public_only: bool = False
    # Restricts archived rows to one owner; None means no restriction.
    archived_owner_id: uuid.UUID | None = None


def like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in `term` matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class ContentRepository:
    async def get_by_id(self, db: AsyncSession, content_id: uuid.UUID) -> ContentItem | None:
        row = await db.execute(
            select(ContentItem)
            .where(ContentItem.id == content_id)
            .execution_options(populate_existing=True)
        )
        return row.scalar_one_or_none()

    async def get_by_id_or_slug(self, db: AsyncSession, id_or_slug: str) -> ContentItem | None:
        content_id = parse_uuid(id_or_slug)
        if content_id is not None:
            item = await self.get_by_id(db, content_id)
            if item is not None:
                return item
        row = await db.execute(
            select(ContentItem)
            .where(ContentItem.slug == str(id_or_slug))
            .execution_options(populate_existing=True)
        )
        return row.scalar_one_or_none()

    async def slugs_with_prefix(self, db: AsyncSession, base: str) -> set[str]:
        rows = await db.execute(
            select(ContentItem.slug).where(
                or_(ContentItem.slug == base, ContentItem.slug.like(f"{base}-%"))
            )
        )
        return set(rows.scalars().all())

    async def create(self, db: AsyncSession, **values: Any) -> ContentItem:
        item = ContentItem(**values)
        db.add(item)
        await db.flush()
        await db.refresh(item)
        return item

    async def guarded_update(
        self,
        db: AsyncSession,
        *,
        content_id: uuid.UUID,
        expected_version: int,
        values: dict[str, Any],
        expected_status: ContentStatus | None = None,
    ) -> bool:
        """Conditional write; False when another writer got there first."""
        stmt = (
            update(ContentItem)
            .where(ContentItem.id == content_id, ContentItem.version == expected_version)
            .values({getattr(ContentItem, key): value for key, value in values.items()})
            .execution_options(synchronize_session=False)
        )
        if expected_status is not None:
            stmt = stmt.where(ContentItem.status == expected_status)
        result = await db.execute(stmt)
        return result.rowcount == 1

    def _apply_filters(self, query, filters: ContentFilters):
        if filters.public_only:
            query = query.where(
                ContentItem.status == ContentStatus.published,
                ContentItem.visibility == ContentVisibility.public,
            )
        if filters.statuses:
            query = query.where(ContentItem.status.in_(filters.statuses))
        if ContentStatus.archived not in filters.statuses:
            query = query.where(ContentItem.status != ContentStatus.archived)
        elif filters.archived_owner_id is not None:
            query = query.where(
                or_(
                    ContentItem.status != ContentStatus.archived,
                    ContentItem.author_id == filters.archived_owner_id,
                )
            )
        if filters.content_type:
            query = query.where(ContentItem.content_type == filters.content_type)
        if filters.author_id is not None:
            query = query.where(ContentItem.author_id == filters.author_id)
        if filters.visibility is not None:
            query = query.where(ContentItem.visibility == filters.visibility)
        if filters.project_id is not None:
            query = query.where(ContentItem.project_id == filters.project_id)
        if filters.tag_slug:
            tagged = (
                select(content_tags.c.content_id)
                .join(Tag, Tag.id == content_tags.c.tag_id)
                .where(Tag.slug == filters.tag_slug)
            )
            query = query.where(ContentItem.id.in_(tagged))
        if filters.search:
            pattern = like_pattern(filters.search)
            query = query.where(
                or_(
                    ContentItem.title.ilike(pattern, escape="\\"),
                    ContentItem.excerpt.ilike(pattern, escape="\\"),
                    ContentItem.body.ilike(pattern, escape="\\"),
                )
            )
        return query

    async def list_items(
        self,
        db: AsyncSession,
        filters: ContentFilters,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[ContentItem], int]:
        rows = await db.execute(
            self._apply_filters(select(ContentItem), filters)
            .order_by(ContentItem.updated_at.desc(), ContentItem.id.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await db.scalar(
            self._apply_filters(select(func.count(ContentItem.id)), filters)
        )
        return list(rows.scalars().all()), int(total or 0)


content_repository = ContentRepository()
