"""Models package."""
from ple_platform.models.user import User, UserRole
from ple_platform.models.content import (
    ChangeKind,
    ContentItem,
    ContentStatus,
    ContentVersion,
    ContentVisibility,
    Tag,
    content_tags,
)
from ple_platform.models.audit import ActionAuditLog
