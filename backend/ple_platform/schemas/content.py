"""
PLE Platform - Content Schemas
==============================
Request bodies for content endpoints. Update requests are read with
`model_dump(exclude_unset=True)` so omitted fields stay untouched.
"""

import uuid
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field

from ple_platform.models.content import ContentVisibility

TagName = Annotated[str, Field(max_length=100)]


class ContentCreateRequest(BaseModel):
    title: str = Field(..., max_length=300)
    body: Optional[str] = None
    excerpt: Optional[str] = None
    content_type: Optional[str] = Field(default=None, max_length=50)
    visibility: Optional[ContentVisibility] = None
    tags: list[TagName] = Field(default_factory=list)
    project_id: Optional[uuid.UUID] = None
    featured_image: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ContentUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=300)
    body: Optional[str] = None
    excerpt: Optional[str] = None
    content_type: Optional[str] = Field(default=None, max_length=50)
    visibility: Optional[ContentVisibility] = None
    tags: Optional[list[TagName]] = None
    project_id: Optional[uuid.UUID] = None
    featured_image: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    change_summary: Optional[str] = Field(default=None, max_length=500)
    version: Optional[int] = Field(default=None, ge=1)


class RevertRequest(BaseModel):
    version_number: int = Field(..., ge=1)
