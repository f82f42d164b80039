"""
PLE Platform - Activity Log
===========================
Append-only record of editorial actions for admin visibility.
"""

import uuid

from sqlalchemy import JSON, Column, DateTime, Index, String, Text, Uuid

from ple_platform.core.database import Base
from ple_platform.models.content import utcnow


class ActionAuditLog(Base):
    __tablename__ = "action_audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(String(80), nullable=False, index=True)
    entity_type = Column(String(80), nullable=False, index=True)
    entity_id = Column(String(120), nullable=True, index=True)
    from_state = Column(String(64), nullable=True)
    to_state = Column(String(64), nullable=True)
    reason = Column(Text, nullable=True)
    details_json = Column(JSON, nullable=True, default=dict)
    actor_user_id = Column(Uuid, nullable=True, index=True)
    actor_name = Column(String(100), nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    request_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_action_audit_entity_created", "entity_type", "entity_id", "created_at"),
    )
