"""Schemas for activity (plan) endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from journalmate.api.schemas.task import CamelModel, TaskPayload, TaskSeedPayload
from journalmate.db.models.activity import ActivityStatus


class ActivityPayload(CamelModel):
    id: UUID
    user_id: Optional[UUID]
    title: str
    description: Optional[str] = None
    category: str
    status: ActivityStatus
    is_public: bool
    share_token: Optional[str] = None
    content_hash: str
    copied_from_share_token: Optional[str] = None
    is_archived: bool
    view_count: int
    adoption_count: int
    created_at: datetime
    updated_at: datetime


class ActivityDetail(ActivityPayload):
    tasks: List[TaskPayload] = Field(default_factory=list)


class ActivityCreateRequest(CamelModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=5000)
    category: str = Field(default="general", max_length=50)
    tasks: List[TaskSeedPayload] = Field(default_factory=list, max_length=200)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned


class ActivityOwnerRequest(CamelModel):
    user_id: UUID


class ActivityCopyRequest(CamelModel):
    user_id: UUID
    force_update: bool = False


class ActivityCopyResponse(CamelModel):
    activity: ActivityPayload
    tasks: List[TaskPayload]
    is_update: bool
    preserved_progress: int = 0
    message: str
    request_id: str


class ExistingActivityRef(CamelModel):
    id: UUID
    title: str


class DuplicateCopyResponse(CamelModel):
    error: str = "You already have this activity"
    requires_confirmation: bool = True
    existing_activity: Optional[ExistingActivityRef] = None
    message: str
    request_id: str


class ShareLinkResponse(CamelModel):
    activity_id: UUID
    share_token: str
    share_path: str
    request_id: str


class SharedActivityResponse(CamelModel):
    activity: ActivityPayload
    tasks: List[TaskPayload]
    plan_summary: str
    request_id: str
