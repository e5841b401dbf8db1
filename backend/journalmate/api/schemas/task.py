"""Schemas for task payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TaskPayload(CamelModel):
    id: UUID
    activity_id: UUID
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    completed: bool
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    position: int
    original_task_id: Optional[UUID] = None


class TaskSeedPayload(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: str = Field(default="general", max_length=50)
    priority: Literal["low", "medium", "high"] = "medium"
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned


class TaskUpdateRequest(CamelModel):
    user_id: UUID
    completed: bool


class TaskUpdateResponse(CamelModel):
    id: UUID
    completed: bool
    completed_at: Optional[datetime]
    request_id: str
