"""users, content items, version archive, tags and action audit logs

Revision ID: 20261018_content_lifecycle
Revises:
Create Date: 2026-10-18 09:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_content_lifecycle"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('member', 'editor', 'admin')", name="user_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tags",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )
    op.create_index("ix_tags_slug", "tags", ["slug"], unique=True)

    op.create_table(
        "content_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("slug", sa.String(length=300), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(length=50), nullable=False, server_default="article"),
        sa.Column("featured_image", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("visibility", sa.String(length=20), nullable=False, server_default="internal"),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewer_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'in_review', 'approved', 'published', 'archived')",
            name="content_status",
        ),
        sa.CheckConstraint("visibility IN ('public', 'internal', 'members')", name="content_visibility"),
    )
    op.create_index("ix_content_items_slug", "content_items", ["slug"], unique=True)
    op.create_index("ix_content_items_status", "content_items", ["status"], unique=False)
    op.create_index("ix_content_items_content_type", "content_items", ["content_type"], unique=False)
    op.create_index("ix_content_items_author_id", "content_items", ["author_id"], unique=False)
    op.create_index("ix_content_items_project_id", "content_items", ["project_id"], unique=False)
    op.create_index("ix_content_items_updated_at", "content_items", ["updated_at"], unique=False)
    op.create_index("ix_content_items_status_visibility", "content_items", ["status", "visibility"], unique=False)

    op.create_table(
        "content_versions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("content_id", sa.Uuid(), sa.ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("changed_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("change_summary", sa.Text(), nullable=True),
        sa.Column("change_kind", sa.String(length=16), nullable=False, server_default="edit"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("content_id", "version_number", name="uq_content_versions_content_version"),
    )
    op.create_index("ix_content_versions_content_id", "content_versions", ["content_id"], unique=False)

    op.create_table(
        "content_tags",
        sa.Column("content_id", sa.Uuid(), sa.ForeignKey("content_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.Uuid(), sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "action_audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=120), nullable=True),
        sa.Column("from_state", sa.String(length=64), nullable=True),
        sa.Column("to_state", sa.String(length=64), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("details_json", sa.JSON(), nullable=True),
        sa.Column("actor_user_id", sa.Uuid(), nullable=True),
        sa.Column("actor_name", sa.String(length=100), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_action_audit_logs_action", "action_audit_logs", ["action"], unique=False)
    op.create_index("ix_action_audit_logs_entity_type", "action_audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_action_audit_logs_entity_id", "action_audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_action_audit_logs_actor_user_id", "action_audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_action_audit_logs_correlation_id", "action_audit_logs", ["correlation_id"], unique=False)
    op.create_index("ix_action_audit_logs_request_id", "action_audit_logs", ["request_id"], unique=False)
    op.create_index("ix_action_audit_logs_created_at", "action_audit_logs", ["created_at"], unique=False)
    op.create_index(
        "ix_action_audit_entity_created",
        "action_audit_logs",
        ["entity_type", "entity_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_action_audit_entity_created", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_created_at", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_request_id", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_correlation_id", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_actor_user_id", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_entity_id", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_entity_type", table_name="action_audit_logs")
    op.drop_index("ix_action_audit_logs_action", table_name="action_audit_logs")
    op.drop_table("action_audit_logs")
    op.drop_table("content_tags")
    op.drop_index("ix_content_versions_content_id", table_name="content_versions")
    op.drop_table("content_versions")
    op.drop_index("ix_content_items_status_visibility", table_name="content_items")
    op.drop_index("ix_content_items_updated_at", table_name="content_items")
    op.drop_index("ix_content_items_project_id", table_name="content_items")
    op.drop_index("ix_content_items_author_id", table_name="content_items")
    op.drop_index("ix_content_items_content_type", table_name="content_items")
    op.drop_index("ix_content_items_status", table_name="content_items")
    op.drop_index("ix_content_items_slug", table_name="content_items")
    op.drop_table("content_items")
    op.drop_index("ix_tags_slug", table_name="tags")
    op.drop_table("tags")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
