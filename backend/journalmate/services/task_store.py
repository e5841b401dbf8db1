"""Persistence helpers for tasks that belong to an activity."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from journalmate.db.models.activity import Activity
from journalmate.db.models.task import Task
from journalmate.services.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class TaskSeed:
    """Fields for a task that is about to be created."""

    title: str
    description: Optional[str] = None
    category: str = "general"
    priority: str = "medium"
    due_date: Optional[datetime] = None
    original_task_id: Optional[UUID] = None
    completed: bool = False
    completed_at: Optional[datetime] = None


def create_many(db: Session, activity: Activity | UUID, seeds: Sequence[TaskSeed]) -> List[Task]:
    """Insert a batch of tasks for an activity, preserving the seed order.

    Flushes so the new rows get ids but leaves committing to the caller.
    """
    if not isinstance(activity, Activity):
        activity = _require_activity(db, activity)

    tasks: List[Task] = []
    for position, seed in enumerate(seeds):
        completed_at = seed.completed_at
        if seed.completed and completed_at is None:
            completed_at = datetime.now(timezone.utc)
        task = Task(
            activity_id=activity.id,
            user_id=activity.user_id,
            title=seed.title,
            description=seed.description,
            category=seed.category or "general",
            priority=seed.priority or "medium",
            due_date=seed.due_date,
            position=position,
            original_task_id=seed.original_task_id,
            completed=bool(seed.completed),
            completed_at=completed_at if seed.completed else None,
        )
        tasks.append(task)

    try:
        db.add_all(tasks)
        db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to create tasks", {"activity_id": str(activity.id)}) from exc

    logger.debug("Created %s tasks for activity %s", len(tasks), activity.id)
    return tasks


def list_by_activity(db: Session, activity_id: UUID) -> List[Task]:
    """Return an activity's tasks in their stored order."""
    _require_activity(db, activity_id)
    try:
        return (
            db.query(Task)
            .filter(Task.activity_id == activity_id)
            .order_by(asc(Task.position), asc(Task.created_at))
            .all()
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to load tasks", {"activity_id": str(activity_id)}) from exc


def find_by_original_task_id(db: Session, activity_id: UUID, original_task_id: UUID) -> Optional[Task]:
    _require_activity(db, activity_id)
    try:
        return (
            db.query(Task)
            .filter(Task.activity_id == activity_id, Task.original_task_id == original_task_id)
            .order_by(asc(Task.position))
            .first()
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to look up task lineage", {"activity_id": str(activity_id)}) from exc


def get(db: Session, task_id: UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise NotFoundError("Task not found", {"task_id": str(task_id)})
    return task


def set_completed(db: Session, task_id: UUID, completed: bool) -> Tuple[Task, bool]:
    """Set a task's completion state.

    Returns the task and whether anything changed. Re-completing a completed
    task keeps its original ``completed_at``.
    """
    task = get(db, task_id)
    if bool(task.completed) == completed:
        return task, False

    task.completed = completed
    task.completed_at = datetime.now(timezone.utc) if completed else None
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to update task", {"task_id": str(task_id)}) from exc
    return task, True


def _require_activity(db: Session, activity_id: UUID) -> Activity:
    activity = db.get(Activity, activity_id)
    if not activity:
        raise NotFoundError("Activity not found", {"activity_id": str(activity_id)})
    return activity
