"""
PLE Platform - Content Models
=============================
Editorial content items, their append-only version archive, and tags.
Lifecycle: draft -> in_review -> approved -> published -> (draft) ... archived
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Table, Text,
    UniqueConstraint, Uuid,
)

from ple_platform.core.database import Base
from ple_platform.models.user import enum_values


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──

class ContentStatus(str, enum.Enum):
    draft = "draft"
    in_review = "in_review"
    approved = "approved"
    published = "published"
    archived = "archived"


class ContentVisibility(str, enum.Enum):
    public = "public"
    internal = "internal"
    members = "members"


class ChangeKind(str, enum.Enum):
    edit = "edit"
    revert = "revert"


# ── Models ──

content_tags = Table(
    "content_tags",
    Base.metadata,
    Column("content_id", Uuid, ForeignKey("content_items.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    slug = Column(String(100), nullable=False, unique=True, index=True)

    def __repr__(self):
        return f"<Tag(slug='{self.slug}')>"


class ContentItem(Base):
    """Mutable current representation of an editorial document."""
    __tablename__ = "content_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String(300), nullable=False, unique=True, index=True)

    # ── Editorial ──
    title = Column(String(300), nullable=False)
    body = Column(Text, nullable=False, default="")
    excerpt = Column(Text, nullable=True)
    content_type = Column(String(50), nullable=False, default="article", index=True)
    featured_image = Column(Text, nullable=True)
    extra_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # ── Lifecycle ──
    status = Column(
        Enum(ContentStatus, name="content_status", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=ContentStatus.draft,
        index=True,
    )
    visibility = Column(
        Enum(ContentVisibility, name="content_visibility", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=ContentVisibility.internal,
    )

    # ── Provenance ──
    author_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    project_id = Column(Uuid, nullable=True, index=True)
    version = Column(Integer, nullable=False, default=1)

    # ── Timestamps ──
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_content_items_status_visibility", "status", "visibility"),
    )

    def __repr__(self):
        return f"<ContentItem(id={self.id}, slug='{self.slug}', v{self.version}, {self.status})>"


class ContentVersion(Base):
    """Immutable snapshot of a content item's title/body before an update."""
    __tablename__ = "content_versions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    content_id = Column(Uuid, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    title = Column(String(300), nullable=False)
    body = Column(Text, nullable=True)
    changed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    change_summary = Column(Text, nullable=True)
    change_kind = Column(String(16), nullable=False, default=ChangeKind.edit.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("content_id", "version_number", name="uq_content_versions_content_version"),
    )

    def __repr__(self):
        return f"<ContentVersion(content_id={self.content_id}, version={self.version_number})>"
