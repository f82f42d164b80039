"""
PLE Platform - Content Routes
=============================
Editorial content CRUD, lifecycle actions, version history and revert.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from ple_platform.api.deps.rbac import get_content_service, require_roles
from ple_platform.api.envelope import content_envelope, success_envelope
from ple_platform.api.routes.auth import get_current_user, get_optional_user
from ple_platform.core.errors import ValidationError
from ple_platform.models.user import User, UserRole
from ple_platform.schemas.content import ContentCreateRequest, ContentUpdateRequest, RevertRequest
from ple_platform.services.content_service import ContentService

router = APIRouter(prefix="/content", tags=["Content"])


def _parse_if_match(value: str | None) -> int | None:
    if value is None:
        return None
    token = value.strip()
    if token.startswith("W/"):
        token = token[2:]
    token = token.strip('"')
    try:
        return int(token)
    except ValueError as exc:
        raise ValidationError("If-Match must carry a content version number") from exc


@router.get("")
async def list_content(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    content_type: Optional[str] = Query(default=None, alias="type"),
    author: Optional[str] = None,
    visibility: Optional[str] = None,
    tag: Optional[str] = None,
    project_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    viewer: Optional[User] = Depends(get_optional_user),
    service: ContentService = Depends(get_content_service),
):
    page = await service.list_content(
        viewer,
        status=status_filter,
        content_type=content_type,
        author=author,
        visibility=visibility,
        tag=tag,
        project_id=project_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return success_envelope(page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_content(
    payload: ContentCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    created = await service.create(current_user, payload.model_dump())
    return content_envelope(created, status_code=status.HTTP_201_CREATED)


@router.get("/{content_id}/versions")
async def list_versions(
    content_id: str,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    versions = await service.list_versions(content_id, current_user)
    return success_envelope({"versions": versions})


@router.get("/{content_id}/activity")
async def list_activity(
    content_id: str,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(require_roles(UserRole.editor, UserRole.admin)),
    service: ContentService = Depends(get_content_service),
):
    activity = await service.list_activity(content_id, current_user, limit=limit, offset=offset)
    return success_envelope({"activity": activity, "limit": limit, "offset": offset})


@router.get("/{id_or_slug}")
async def get_content(
    id_or_slug: str,
    viewer: Optional[User] = Depends(get_optional_user),
    service: ContentService = Depends(get_content_service),
):
    return content_envelope(await service.get(id_or_slug, viewer))


@router.put("/{content_id}")
async def update_content(
    content_id: str,
    payload: ContentUpdateRequest,
    if_match: Optional[str] = Header(default=None),
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    fields = payload.model_dump(exclude_unset=True)
    body_version = fields.pop("version", None)
    expected_version = _parse_if_match(if_match)
    if expected_version is None:
        expected_version = body_version
    updated = await service.update(content_id, current_user, fields, expected_version=expected_version)
    return content_envelope(updated)


@router.post("/{content_id}/revert")
async def revert_content(
    content_id: str,
    payload: RevertRequest,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    reverted = await service.revert(content_id, payload.version_number, current_user)
    return content_envelope(reverted)


@router.post("/{content_id}/{action}")
async def transition_content(
    content_id: str,
    action: str,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return content_envelope(await service.transition(content_id, action, current_user))


@router.delete("/{content_id}")
async def archive_content(
    content_id: str,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    return content_envelope(await service.archive(content_id, current_user))
