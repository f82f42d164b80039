from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ple_platform.core.errors import InvalidTransition, NotAuthorized, ValidationError
from ple_platform.models.content import ContentStatus
from ple_platform.models.user import UserRole


class ContentAction(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    REVERT = "revert"
    ARCHIVE = "archive"


EDITORIAL_ROLES: frozenset[UserRole] = frozenset({UserRole.editor, UserRole.admin})

# Admins may publish straight from these states without an approval.
ADMIN_OVERRIDE_PUBLISH_FROM: frozenset[ContentStatus] = frozenset(
    {ContentStatus.draft, ContentStatus.in_review, ContentStatus.approved, ContentStatus.published}
)

NON_ARCHIVED: frozenset[ContentStatus] = frozenset(s for s in ContentStatus if s != ContentStatus.archived)


def actor_role(actor: Any) -> UserRole:
    return UserRole(getattr(actor.role, "value", actor.role))


def is_author(item: Any, actor: Any) -> bool:
    return actor is not None and str(item.author_id) == str(actor.id)


def is_editorial(actor: Any) -> bool:
    return actor is not None and actor_role(actor) in EDITORIAL_ROLES


def is_admin(actor: Any) -> bool:
    return actor is not None and actor_role(actor) == UserRole.admin


@dataclass(frozen=True, slots=True)
class TransitionRule:
    from_states: frozenset[ContentStatus]
    to_status: ContentStatus
    guard: Callable[[Any, Any], bool]
    denied_message: str
    invalid_message: str
    side_effects: Callable[[Any, datetime], dict[str, Any]] = lambda _actor, _now: {}


RULES: dict[ContentAction, TransitionRule] = {
    ContentAction.SUBMIT: TransitionRule(
        from_states=frozenset({ContentStatus.draft}),
        to_status=ContentStatus.in_review,
        guard=is_author,
        denied_message="Only the author can submit content for review",
        invalid_message="Only drafts can be submitted for review",
    ),
    ContentAction.APPROVE: TransitionRule(
        from_states=frozenset({ContentStatus.in_review}),
        to_status=ContentStatus.approved,
        guard=lambda _item, actor: is_editorial(actor),
        denied_message="Only editors can approve content",
        invalid_message="Only content in review can be approved",
        side_effects=lambda actor, _now: {"reviewer_id": actor.id},
    ),
    ContentAction.PUBLISH: TransitionRule(
        from_states=frozenset({ContentStatus.approved}),
        to_status=ContentStatus.published,
        guard=lambda item, actor: is_author(item, actor) or is_editorial(actor),
        denied_message="Permission denied",
        invalid_message="Only approved content can be published",
        side_effects=lambda _actor, now: {"published_at": now},
    ),
    ContentAction.UNPUBLISH: TransitionRule(
        from_states=frozenset({ContentStatus.published}),
        to_status=ContentStatus.draft,
        guard=lambda _item, actor: is_editorial(actor),
        denied_message="Only editors can unpublish content",
        invalid_message="Only published content can be unpublished",
        side_effects=lambda _actor, _now: {"published_at": None},
    ),
    ContentAction.REVERT: TransitionRule(
        from_states=frozenset(ContentStatus),
        to_status=ContentStatus.draft,
        guard=lambda item, actor: is_author(item, actor) or is_editorial(actor),
        denied_message="Permission denied",
        invalid_message="Content cannot be reverted",
        side_effects=lambda _actor, _now: {"published_at": None},
    ),
    ContentAction.ARCHIVE: TransitionRule(
        from_states=NON_ARCHIVED,
        to_status=ContentStatus.archived,
        guard=lambda item, actor: is_author(item, actor) or is_admin(actor),
        denied_message="Only the author or an admin can archive content",
        invalid_message="Content is already archived",
    ),
}


@dataclass(slots=True)
class TransitionPlan:
    action: ContentAction
    from_status: ContentStatus
    to_status: ContentStatus
    changes: dict[str, Any] = field(default_factory=dict)
    admin_override: bool = False


def parse_action(value: str | ContentAction) -> ContentAction:
    try:
        return ContentAction(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown action: {value}") from exc


def plan_transition(item: Any, action: str | ContentAction, actor: Any, *, now: datetime) -> TransitionPlan:
    """
    Decide whether `actor` may apply `action` to `item` in its current status.

    Raises NotAuthorized when the guard fails and InvalidTransition when the
    action is not legal from the current status. Never mutates `item`.
    """
    action = parse_action(action)
    rule = RULES[action]
    current = ContentStatus(item.status)

    if action == ContentAction.PUBLISH and is_admin(actor) and current in ADMIN_OVERRIDE_PUBLISH_FROM:
        changes = {"status": rule.to_status, **rule.side_effects(actor, now)}
        return TransitionPlan(
            action=action,
            from_status=current,
            to_status=rule.to_status,
            changes=changes,
            admin_override=current != ContentStatus.approved,
        )

    if actor is None or not rule.guard(item, actor):
        raise NotAuthorized(rule.denied_message)
    if current not in rule.from_states:
        raise InvalidTransition(
            rule.invalid_message,
            details={"action": action.value, "from_state": current.value},
        )

    changes = {"status": rule.to_status, **rule.side_effects(actor, now)}
    return TransitionPlan(action=action, from_status=current, to_status=rule.to_status, changes=changes)


def allowed_actions(item: Any, actor: Any, *, now: datetime) -> list[ContentAction]:
    allowed = []
    for action in ContentAction:
        try:
            plan_transition(item, action, actor, now=now)
        except (NotAuthorized, InvalidTransition):
            continue
        allowed.append(action)
    return allowed
