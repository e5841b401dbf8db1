"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from journalmate.db.base import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_activity_id", "activity_id"),
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_original_task_id", "original_task_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    activity_id = Column(
        UUID(as_uuid=True),
        ForeignKey("activities.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(length=50), nullable=False, server_default=sa_text("'general'"))
    priority = Column(String(length=20), nullable=False, server_default=sa_text("'medium'"))
    completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    position = Column(Integer, nullable=False, server_default=sa_text("0"))
    # Lineage hint only: no foreign key, the referenced task may be gone.
    original_task_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    activity = relationship("Activity", back_populates="tasks")
