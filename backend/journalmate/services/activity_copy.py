"""Copy shared plans into a user's account and reconcile re-copies."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from journalmate.db.models.activity import Activity
from journalmate.db.models.task import Task
from journalmate.services import activity_store, task_store
from journalmate.services.audit import log_action
from journalmate.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCopyError,
    NotFoundError,
    PersistenceError,
    PlanCopyError,
)
from journalmate.services.fingerprint import activity_fingerprint
from journalmate.services.task_store import TaskSeed
from journalmate.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)


@dataclass
class CopyResult:
    activity: Activity
    tasks: List[Task]
    is_update: bool = False
    preserved_progress: int = 0
    archived_activity_id: Optional[UUID] = None
    archived_activity_ids: List[UUID] = field(default_factory=list)


@dataclass
class DuplicateDetected:
    """The user already holds a live copy; re-invoke with force_update to replace it."""

    existing_activity_id: UUID
    existing_title: str
    conflict: bool = False


CopyOutcome = Union[CopyResult, DuplicateDetected]


@dataclass
class _ProgressIndex:
    by_lineage: Dict[UUID, Task] = field(default_factory=dict)
    by_title: Dict[str, Task] = field(default_factory=dict)

    def match(self, source_task: Task) -> Optional[Task]:
        lineage_id = source_task.original_task_id or source_task.id
        return self.by_lineage.get(lineage_id) or self.by_title.get(normalize_title(source_task.title))


def normalize_title(title: str | None) -> str:
    return (title or "").strip().casefold()


def copy_activity(
    db: Session,
    share_token: str,
    target_user_id: UUID,
    force_update: bool = False,
    request_id: str | None = None,
) -> CopyOutcome:
    """Copy the plan behind ``share_token`` into ``target_user_id``'s account.

    Without ``force_update`` an existing live copy is never touched and a
    DuplicateDetected outcome is returned instead. With it, the old copy is
    archived and completion state is carried over to matching tasks of the
    new copy. Create, carry-over and archive commit together or not at all.
    """
    source = activity_store.find_by_share_token(db, share_token)
    if not source:
        raise NotFoundError("Shared activity not found or link has expired", {"share_token": share_token})
    if not source.is_public:
        raise ForbiddenError("This activity is not public and cannot be copied", {"share_token": share_token})
    if source.user_id == target_user_id:
        raise InvalidCopyError("You cannot copy your own activity", {"activity_id": str(source.id)})

    source_tasks = task_store.list_by_activity(db, source.id)
    content_hash = activity_fingerprint(source, source_tasks)

    existing = _find_existing_copy(db, target_user_id, content_hash, share_token)
    if existing and not force_update:
        logger.info("User already holds copy %s of share token %s", existing.id, share_token)
        return DuplicateDetected(existing_activity_id=existing.id, existing_title=existing.title)

    try:
        get_or_create_user(db, target_user_id)
        if existing is None:
            result = _create_copy(db, source, source_tasks, share_token, target_user_id, content_hash)
        else:
            live_copies = _live_copies(db, target_user_id, share_token, existing)
            result = _replace_copy(db, source, source_tasks, live_copies, share_token, target_user_id, content_hash)
        _log_copy(db, source, result, share_token, target_user_id, request_id)
        db.commit()
    except (ConflictError, IntegrityError) as exc:
        db.rollback()
        return _resolve_conflict(db, target_user_id, content_hash, share_token, exc)
    except PlanCopyError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to copy activity", {"share_token": share_token}) from exc

    logger.info(
        "Copied share token %s into activity %s (update=%s, preserved=%s)",
        share_token,
        result.activity.id,
        result.is_update,
        result.preserved_progress,
    )
    activity_store.increment_adoption_count(db, source.id)
    return result


def _find_existing_copy(
    db: Session,
    user_id: UUID,
    content_hash: str,
    share_token: str,
) -> Optional[Activity]:
    # The share-token lookup catches copies whose source was edited since.
    return activity_store.find_by_owner_and_content_hash(db, user_id, content_hash) or activity_store.find_active_copy(
        db, user_id, share_token
    )


def _create_copy(
    db: Session,
    source: Activity,
    source_tasks: Sequence[Task],
    share_token: str,
    user_id: UUID,
    content_hash: str,
) -> CopyResult:
    seeds = [_seed_from_source(task) for task in source_tasks]
    activity = activity_store.create(db, user_id, _copy_fields(source, share_token, content_hash), seeds)
    tasks = task_store.list_by_activity(db, activity.id)
    return CopyResult(activity=activity, tasks=tasks, is_update=False)


def _live_copies(db: Session, user_id: UUID, share_token: str, primary: Activity) -> List[Activity]:
    """Every live activity a forced copy replaces, ``primary`` first.

    The hash match may be a different plan than the user's earlier copy of
    this share token; both are moved to history.
    """
    copies = [primary]
    token_copy = activity_store.find_active_copy(db, user_id, share_token)
    if token_copy is not None and token_copy.id != primary.id:
        copies.append(token_copy)
    return copies


def _replace_copy(
    db: Session,
    source: Activity,
    source_tasks: Sequence[Task],
    replaced: Sequence[Activity],
    share_token: str,
    user_id: UUID,
    content_hash: str,
) -> CopyResult:
    old_tasks: List[Task] = []
    for old in replaced:
        old_tasks.extend(task_store.list_by_activity(db, old.id))
    index = _build_progress_index(old_tasks)

    seeds: List[TaskSeed] = []
    preserved = 0
    for source_task in source_tasks:
        seed = _seed_from_source(source_task)
        previous = index.match(source_task)
        if previous is not None and previous.completed:
            seed.completed = True
            seed.completed_at = previous.completed_at
            preserved += 1
        seeds.append(seed)

    # Archive first so the partial unique index frees the content hash.
    for old in replaced:
        activity_store.archive(db, old.id)
    activity = activity_store.create(db, user_id, _copy_fields(source, share_token, content_hash), seeds)
    tasks = task_store.list_by_activity(db, activity.id)
    return CopyResult(
        activity=activity,
        tasks=tasks,
        is_update=True,
        preserved_progress=preserved,
        archived_activity_id=replaced[0].id,
        archived_activity_ids=[old.id for old in replaced],
    )


def _build_progress_index(old_tasks: Sequence[Task]) -> _ProgressIndex:
    index = _ProgressIndex()
    for task in old_tasks:
        if task.original_task_id:
            _remember(index.by_lineage, task.original_task_id, task)
        _remember(index.by_lineage, task.id, task)
        _remember(index.by_title, normalize_title(task.title), task)
    return index


def _remember(slots: Dict, key, task: Task) -> None:
    # First task wins unless a later one under the same key is completed.
    current = slots.get(key)
    if current is None or (task.completed and not current.completed):
        slots[key] = task


def _seed_from_source(task: Task) -> TaskSeed:
    return TaskSeed(
        title=task.title,
        description=task.description,
        category=task.category or "general",
        priority=task.priority or "medium",
        due_date=task.due_date,
        original_task_id=task.original_task_id or task.id,
    )


def _copy_fields(source: Activity, share_token: str, content_hash: str) -> dict:
    metadata = dict(source.metadata_json or {})
    metadata["copied_from_activity_id"] = str(source.id)
    return {
        "title": source.title,
        "description": source.description,
        "category": source.category or "general",
        "status": "planning",
        "is_public": False,
        "content_hash": content_hash,
        "copied_from_share_token": share_token,
        "metadata_json": metadata,
    }


def _resolve_conflict(
    db: Session,
    user_id: UUID,
    content_hash: str,
    share_token: str,
    exc: Exception,
) -> DuplicateDetected:
    winner = _find_existing_copy(db, user_id, content_hash, share_token)
    if winner is None:
        if isinstance(exc, ConflictError):
            raise exc
        raise ConflictError("Concurrent copy detected", {"share_token": share_token}) from exc
    logger.warning("Concurrent copy of %s for user %s resolved to %s", share_token, user_id, winner.id)
    return DuplicateDetected(existing_activity_id=winner.id, existing_title=winner.title, conflict=True)


def _log_copy(
    db: Session,
    source: Activity,
    result: CopyResult,
    share_token: str,
    user_id: UUID,
    request_id: str | None,
) -> None:
    log_action(
        db,
        user_id=user_id,
        action_type="activity_copy_updated" if result.is_update else "activity_copied",
        payload={
            "share_token": share_token,
            "source_activity_id": str(source.id),
            "activity_id": str(result.activity.id),
            "archived_activity_id": str(result.archived_activity_id) if result.archived_activity_id else None,
            "archived_activity_ids": [str(activity_id) for activity_id in result.archived_activity_ids],
            "task_count": len(result.tasks),
            "preserved_progress": result.preserved_progress,
            "request_id": request_id,
        },
        reason=f"Copied shared plan {source.id}",
    )
