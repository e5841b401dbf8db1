"""Activity (plan) ORM model."""
from __future__ import annotations

from typing import Literal, get_args
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from journalmate.db.base import Base
from journalmate.db.types import JSONBCompat

ActivityStatus = Literal["planning", "active", "completed", "cancelled"]
ACTIVITY_STATUSES = get_args(ActivityStatus)


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_id", "user_id"),
        Index("ix_activities_copied_from_share_token", "copied_from_share_token"),
        # Only the live copy counts; archived generations keep their hash for history.
        Index(
            "uq_activities_user_content_hash",
            "user_id",
            "content_hash",
            unique=True,
            postgresql_where=sa_text("NOT is_archived"),
            sqlite_where=sa_text("NOT is_archived"),
        ),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{value}'" for value in ACTIVITY_STATUSES) + ")",
            name="ck_activities_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(length=50), nullable=False, server_default=sa_text("'general'"))
    status = Column(String(length=50), nullable=False, server_default=sa_text("'planning'"))
    is_public = Column(Boolean, nullable=False, server_default=sa_text("false"))
    share_token = Column(String(length=64), nullable=True, unique=True)
    content_hash = Column(String(length=64), nullable=False)
    copied_from_share_token = Column(String(length=64), nullable=True)
    is_archived = Column(Boolean, nullable=False, server_default=sa_text("false"))
    view_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    adoption_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONBCompat, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    owner = relationship("User", back_populates="activities")
    tasks = relationship(
        "Task",
        back_populates="activity",
        order_by="Task.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
