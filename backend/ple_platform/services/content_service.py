"""
PLE Platform - Content Service
==============================
Create, edit, read, list and move content through its editorial lifecycle.

Every write runs in one transaction on the injected session: the version
snapshot, the version-guarded update, tag associations and the activity row
commit together or not at all.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ple_platform.core.config import get_settings
from ple_platform.core.errors import (
    Conflict,
    ContentError,
    InternalError,
    InvalidTransition,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
    ValidationError,
    VersionNotFound,
)
from ple_platform.core.logging import get_logger
from ple_platform.domain.content.workflow import (
    ContentAction,
    allowed_actions,
    is_admin,
    is_author,
    is_editorial,
    parse_action,
    plan_transition,
)
from ple_platform.models import ChangeKind, ContentItem, ContentStatus, ContentVersion, ContentVisibility, Tag
from ple_platform.models.content import utcnow
from ple_platform.repositories.content_repository import ContentFilters, content_repository, parse_uuid
from ple_platform.repositories.version_repository import version_repository
from ple_platform.services.audit_service import audit_service
from ple_platform.services.tag_service import tag_service
from ple_platform.utils.slugify import first_free_slug, slugify

logger = get_logger("services.content")

TITLE_MAX_LENGTH = 300
SLUG_INSERT_ATTEMPTS = 5
DEFAULT_CHANGE_SUMMARY = "Updated"

# Request field name -> ContentItem attribute.
UPDATABLE_FIELDS = {
    "title": "title",
    "body": "body",
    "excerpt": "excerpt",
    "content_type": "content_type",
    "visibility": "visibility",
    "featured_image": "featured_image",
    "project_id": "project_id",
    "metadata": "extra_metadata",
}

AUDIT_ACTIONS = {
    ContentAction.SUBMIT: "content_submitted",
    ContentAction.APPROVE: "content_approved",
    ContentAction.PUBLISH: "content_published",
    ContentAction.UNPUBLISH: "content_unpublished",
    ContentAction.REVERT: "content_reverted",
    ContentAction.ARCHIVE: "content_archived",
}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if isinstance(value, datetime) else None


def _tag_to_dict(tag: Tag) -> dict:
    return {"id": str(tag.id), "name": tag.name, "slug": tag.slug}


def _content_to_dict(item: ContentItem, tags: list[Tag]) -> dict:
    return {
        "id": str(item.id),
        "slug": item.slug,
        "title": item.title,
        "body": item.body,
        "excerpt": item.excerpt,
        "content_type": item.content_type,
        "featured_image": item.featured_image,
        "metadata": item.extra_metadata or {},
        "status": ContentStatus(item.status).value,
        "visibility": ContentVisibility(item.visibility).value,
        "author_id": str(item.author_id),
        "reviewer_id": str(item.reviewer_id) if item.reviewer_id else None,
        "project_id": str(item.project_id) if item.project_id else None,
        "version": item.version,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
        "published_at": _iso(item.published_at),
        "tags": [_tag_to_dict(tag) for tag in tags],
    }


def _version_to_dict(version: ContentVersion) -> dict:
    return {
        "id": str(version.id),
        "content_id": str(version.content_id),
        "version_number": version.version_number,
        "title": version.title,
        "body": version.body,
        "changed_by": str(version.changed_by) if version.changed_by else None,
        "change_summary": version.change_summary,
        "change_kind": version.change_kind,
        "created_at": _iso(version.created_at),
    }


def can_read(item: ContentItem, viewer: Any) -> bool:
    status = ContentStatus(item.status)
    if viewer is None:
        return status == ContentStatus.published and ContentVisibility(item.visibility) == ContentVisibility.public
    if status == ContentStatus.archived:
        return is_author(item, viewer) or is_admin(viewer)
    return True


def _parse_enum(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value}. Allowed: {allowed}") from exc


def _parse_optional_uuid(value: Any, field_name: str) -> uuid.UUID | None:
    if value in (None, ""):
        return None
    parsed = parse_uuid(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field_name}: {value}")
    return parsed


def _clean_title(value: Any) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Title must be a string")
    title = (value or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Map supplied request fields to column values; unknown keys are ignored."""
    values: dict[str, Any] = {}
    for key, attr in UPDATABLE_FIELDS.items():
        if key not in fields:
            continue
        value = fields[key]
        if key == "title":
            value = _clean_title(value)
        elif key == "body":
            value = value or ""
        elif key == "content_type":
            value = (value or "").strip() or "article"
        elif key == "visibility":
            if value is None:
                continue
            value = _parse_enum(ContentVisibility, value, "visibility")
        elif key == "project_id":
            value = _parse_optional_uuid(value, "project_id")
        elif key == "metadata":
            value = dict(value or {})
        values[attr] = value
    return values


class ContentService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def _atomic(self, operation: str, *, commit: bool = True):
        try:
            yield
            if commit:
                await self.db.commit()
        except ContentError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("content_persistence_failed", operation=operation, error=exc.__class__.__name__)
            raise InternalError() from exc

    def _require_actor(self, actor: Any) -> None:
        if actor is None:
            raise NotAuthenticated()

    async def _load(self, content_id: Any) -> ContentItem:
        parsed = parse_uuid(content_id)
        item = await content_repository.get_by_id(self.db, parsed) if parsed else None
        if item is None:
            raise NotFound()
        return item

    async def _view(self, item: ContentItem) -> dict:
        tags = await tag_service.tags_for(self.db, [item.id])
        return _content_to_dict(item, tags[item.id])

    # ── Create ──

    async def create(self, author: Any, data: dict[str, Any]) -> dict:
        self._require_actor(author)
        title = _clean_title(data.get("title"))
        values = _clean_fields({k: v for k, v in data.items() if k != "title"})
        values.setdefault("body", "")
        tag_names = data.get("tags") or []
        base = slugify(title)

        async with self._atomic("create"):
            taken = await content_repository.slugs_with_prefix(self.db, base)
            item = None
            for _ in range(SLUG_INSERT_ATTEMPTS):
                slug = first_free_slug(base, taken)
                try:
                    async with self.db.begin_nested():
                        item = await content_repository.create(
                            self.db,
                            slug=slug,
                            title=title,
                            status=ContentStatus.draft,
                            author_id=author.id,
                            version=1,
                            **values,
                        )
                    break
                except IntegrityError:
                    logger.info("content_slug_taken", slug=slug)
                    taken.add(slug)
                    item = None
            if item is None:
                raise Conflict("Could not allocate a unique slug", details={"slug": base})

            if tag_names:
                tag_ids = await tag_service.ensure_tags(self.db, tag_names)
                await tag_service.set_content_tags(self.db, item.id, tag_ids)

            await audit_service.log_action(
                self.db,
                action="content_created",
                entity_id=item.id,
                actor=author,
                to_state=ContentStatus.draft.value,
                details={"slug": item.slug, "title": item.title},
            )
            result = {"id": str(item.id), "slug": item.slug}

        logger.info("content_created", content_id=result["id"], slug=result["slug"], author_id=str(author.id))
        return result

    # ── Update ──

    async def update(
        self,
        content_id: Any,
        actor: Any,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> dict:
        """
        Apply supplied fields as a new version.

        `fields` holds only what the caller supplied: a missing "tags" key leaves
        tags alone, an empty list clears them. The prior title/body are archived
        as a snapshot before the version-guarded write.
        """
        self._require_actor(actor)
        async with self._atomic("update"):
            item = await self._load(content_id)
            if not (is_author(item, actor) or is_editorial(actor)):
                raise NotAuthorized("Permission denied")
            if ContentStatus(item.status) == ContentStatus.archived:
                raise InvalidTransition("Archived content cannot be edited")

            values = _clean_fields(fields)
            tag_names = fields.get("tags")
            if not values and tag_names is None:
                raise ValidationError("No valid fields to update")

            from_version = item.version
            if expected_version is not None and expected_version != from_version:
                logger.warning(
                    "content_update_conflict",
                    content_id=str(item.id),
                    expected_version=expected_version,
                    actual_version=from_version,
                )
                raise Conflict(
                    "Content was modified by another request",
                    details={"expected_version": expected_version, "actual_version": from_version},
                )

            await version_repository.snapshot_before_update(
                self.db,
                item,
                changed_by=actor.id,
                change_summary=fields.get("change_summary") or DEFAULT_CHANGE_SUMMARY,
            )
            updated = await content_repository.guarded_update(
                self.db,
                content_id=item.id,
                expected_version=from_version,
                values={**values, "version": from_version + 1, "updated_at": utcnow()},
            )
            if not updated:
                logger.warning("content_update_conflict", content_id=str(item.id), expected_version=from_version)
                raise Conflict("Content was modified by another request", details={"expected_version": from_version})

            if tag_names is not None:
                tag_ids = await tag_service.ensure_tags(self.db, tag_names)
                await tag_service.set_content_tags(self.db, item.id, tag_ids)

            changed = sorted(key for key in fields if key in UPDATABLE_FIELDS and UPDATABLE_FIELDS[key] in values)
            if tag_names is not None:
                changed.append("tags")
            await audit_service.log_action(
                self.db,
                action="content_updated",
                entity_id=item.id,
                actor=actor,
                details={"from_version": from_version, "to_version": from_version + 1, "fields": changed},
            )
            item = await self._load(item.id)
            view = await self._view(item)

        logger.info("content_updated", content_id=view["id"], version=view["version"], fields=changed)
        return view

    # ── Read ──

    async def get(self, id_or_slug: str, viewer: Any) -> dict:
        async with self._atomic("get", commit=False):
            item = await content_repository.get_by_id_or_slug(self.db, id_or_slug)
            if item is None or not can_read(item, viewer):
                raise NotFound()
            view = await self._view(item)
            view["version_count"] = await version_repository.count_versions(self.db, item.id)
            if viewer is not None:
                view["allowed_actions"] = [
                    action.value for action in allowed_actions(item, viewer, now=utcnow())
                ]
        return view

    async def list_content(
        self,
        viewer: Any,
        *,
        status: str | None = None,
        content_type: str | None = None,
        author: str | None = None,
        visibility: str | None = None,
        tag: str | None = None,
        project_id: str | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> dict:
        settings = get_settings()
        if limit is None:
            limit = settings.content_default_page_size
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        if offset < 0:
            raise ValidationError("offset must be zero or greater")
        limit = min(limit, settings.content_max_page_size)

        filters = ContentFilters(
            content_type=content_type or None,
            tag_slug=tag or None,
            search=(search or "").strip() or None,
            project_id=_parse_optional_uuid(project_id, "project_id"),
        )
        if status:
            filters.statuses = [
                _parse_enum(ContentStatus, part.strip(), "status")
                for part in status.split(",")
                if part.strip()
            ]
        if visibility:
            filters.visibility = _parse_enum(ContentVisibility, visibility, "visibility")
        if author == "me":
            self._require_actor(viewer)
            filters.author_id = viewer.id
        elif author:
            filters.author_id = _parse_optional_uuid(author, "author")

        if viewer is None:
            filters.public_only = True
        elif not is_admin(viewer):
            filters.archived_owner_id = viewer.id

        async with self._atomic("list", commit=False):
            items, total = await content_repository.list_items(self.db, filters, limit=limit, offset=offset)
            tags = await tag_service.tags_for(self.db, [item.id for item in items])

        return {
            "items": [_content_to_dict(item, tags[item.id]) for item in items],
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        }

    async def list_versions(self, content_id: str, actor: Any) -> list[dict]:
        self._require_actor(actor)
        async with self._atomic("list_versions", commit=False):
            item = await content_repository.get_by_id_or_slug(self.db, content_id)
            if item is None or not can_read(item, actor):
                raise NotFound()
            versions = await version_repository.list_versions(self.db, item.id)
        return [_version_to_dict(version) for version in versions]

    async def list_activity(self, content_id: str, actor: Any, *, limit: int = 50, offset: int = 0) -> list[dict]:
        """Audit trail for one item, newest first."""
        self._require_actor(actor)
        if not is_editorial(actor):
            raise NotAuthorized("Activity is visible to editors and admins only")
        async with self._atomic("list_activity", commit=False):
            item = await content_repository.get_by_id_or_slug(self.db, content_id)
            if item is None or not can_read(item, actor):
                raise NotFound()
            rows = await audit_service.list_for_entity(self.db, entity_id=item.id, limit=limit, offset=offset)
        return [
            {
                "id": str(row.id),
                "action": row.action,
                "from_state": row.from_state,
                "to_state": row.to_state,
                "details": row.details_json or {},
                "actor": {"id": str(row.actor_user_id), "name": row.actor_name} if row.actor_user_id else None,
                "request_id": row.request_id,
                "created_at": _iso(row.created_at),
            }
            for row in rows
        ]

    # ── Lifecycle ──

    async def transition(self, content_id: Any, action: str | ContentAction, actor: Any) -> dict:
        self._require_actor(actor)
        action = parse_action(action)
        if action == ContentAction.REVERT:
            raise ValidationError("Revert requires a version number")

        now = utcnow()
        async with self._atomic("transition"):
            item = await self._load(content_id)
            plan = plan_transition(item, action, actor, now=now)
            if plan.admin_override:
                logger.warning(
                    "content_publish_admin_override",
                    content_id=str(item.id),
                    from_state=plan.from_status.value,
                    actor_id=str(actor.id),
                )

            applied = await content_repository.guarded_update(
                self.db,
                content_id=item.id,
                expected_version=item.version,
                expected_status=plan.from_status,
                values={**plan.changes, "updated_at": now},
            )
            if not applied:
                raise Conflict(
                    "Content changed before the transition could be applied",
                    details={"action": action.value, "from_state": plan.from_status.value},
                )

            await audit_service.log_action(
                self.db,
                action=AUDIT_ACTIONS[action],
                entity_id=item.id,
                actor=actor,
                from_state=plan.from_status.value,
                to_state=plan.to_status.value,
                details={"admin_override": True} if plan.admin_override else None,
            )
            item = await self._load(item.id)
            view = await self._view(item)

        logger.info(
            "content_transition",
            content_id=view["id"],
            action=action.value,
            from_state=plan.from_status.value,
            to_state=plan.to_status.value,
        )
        return view

    async def archive(self, content_id: Any, actor: Any) -> dict:
        return await self.transition(content_id, ContentAction.ARCHIVE, actor)

    async def revert(self, content_id: Any, version_number: int, actor: Any) -> dict:
        """Restore the title/body of an archived snapshot as a new draft version."""
        self._require_actor(actor)
        if isinstance(version_number, bool) or not isinstance(version_number, int) or version_number < 1:
            raise ValidationError("version_number must be a positive integer")

        now = utcnow()
        async with self._atomic("revert"):
            item = await self._load(content_id)
            plan = plan_transition(item, ContentAction.REVERT, actor, now=now)
            snapshot = await version_repository.get_snapshot(self.db, item.id, version_number)
            if snapshot is None:
                raise VersionNotFound(details={"version_number": version_number})

            from_version = item.version
            await version_repository.snapshot_before_update(
                self.db,
                item,
                changed_by=actor.id,
                change_summary=f"Before revert to version {version_number}",
                change_kind=ChangeKind.revert,
            )
            applied = await content_repository.guarded_update(
                self.db,
                content_id=item.id,
                expected_version=from_version,
                values={
                    **plan.changes,
                    "title": snapshot.title,
                    "body": snapshot.body or "",
                    "version": from_version + 1,
                    "updated_at": now,
                },
            )
            if not applied:
                raise Conflict("Content was modified by another request", details={"expected_version": from_version})

            await audit_service.log_action(
                self.db,
                action=AUDIT_ACTIONS[ContentAction.REVERT],
                entity_id=item.id,
                actor=actor,
                from_state=plan.from_status.value,
                to_state=plan.to_status.value,
                details={
                    "reverted_to_version": version_number,
                    "from_version": from_version,
                    "to_version": from_version + 1,
                },
            )
            item = await self._load(item.id)
            view = await self._view(item)

        logger.info("content_reverted", content_id=view["id"], reverted_to=version_number, version=view["version"])
        return view
