from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.core.errors import ValidationError
from ple_platform.core.logging import get_logger
from ple_platform.models import Tag, content_tags
from ple_platform.utils.slugify import slugify

logger = get_logger("services.tags")

TAG_MAX_LENGTH = 100


class TagService:
    async def ensure_tags(self, db: AsyncSession, names: Iterable[str]) -> list[uuid.UUID]:
        """
        Upsert tags by slug and return their ids in input order.

        Names that slugify to nothing are skipped and duplicate slugs collapse
        to one id. An existing tag keeps its stored display name.
        """
        tag_ids: list[uuid.UUID] = []
        seen: set[str] = set()
        for raw in names:
            name = (raw or "").strip()
            if len(name) > TAG_MAX_LENGTH:
                raise ValidationError(
                    f"Tag names must be at most {TAG_MAX_LENGTH} characters", details={"tag": name[:TAG_MAX_LENGTH]}
                )
            slug = slugify(name, fallback="")[:TAG_MAX_LENGTH].rstrip("-")
            if not slug or slug in seen:
                continue
            seen.add(slug)
            tag_ids.append(await self._get_or_create(db, name=name, slug=slug))
        return tag_ids

    async def _get_or_create(self, db: AsyncSession, *, name: str, slug: str) -> uuid.UUID:
        existing = await db.scalar(select(Tag.id).where(Tag.slug == slug))
        if existing is not None:
            return existing
        try:
            async with db.begin_nested():
                tag = Tag(name=name, slug=slug)
                db.add(tag)
            return tag.id
        except IntegrityError:
            # Lost a race with a concurrent insert of the same slug (or name).
            logger.info("tag_upsert_race", slug=slug)
            existing = await db.scalar(select(Tag.id).where((Tag.slug == slug) | (Tag.name == name)))
            if existing is None:
                raise
            return existing

    async def set_content_tags(
        self, db: AsyncSession, content_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]
    ) -> None:
        await db.execute(delete(content_tags).where(content_tags.c.content_id == content_id))
        rows = [{"content_id": content_id, "tag_id": tag_id} for tag_id in dict.fromkeys(tag_ids)]
        if rows:
            await db.execute(insert(content_tags), rows)

    async def tags_for(
        self, db: AsyncSession, content_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, list[Tag]]:
        ids = list(content_ids)
        result: dict[uuid.UUID, list[Tag]] = {content_id: [] for content_id in ids}
        if not ids:
            return result
        rows = await db.execute(
            select(content_tags.c.content_id, Tag)
            .join(Tag, Tag.id == content_tags.c.tag_id)
            .where(content_tags.c.content_id.in_(ids))
            .order_by(Tag.name)
        )
        for content_id, tag in rows.all():
            result[content_id].append(tag)
        return result


tag_service = TagService()
