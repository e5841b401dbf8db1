"""Persistence helpers for activities (plans)."""
from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from journalmate.core.config import settings
from journalmate.db.models.activity import Activity
from journalmate.services import task_store
from journalmate.services.errors import ConflictError, NotFoundError, PersistenceError
from journalmate.services.fingerprint import compute_content_hash
from journalmate.services.task_store import TaskSeed

logger = logging.getLogger(__name__)

_CREATE_FIELDS = {
    "title",
    "description",
    "category",
    "status",
    "is_public",
    "content_hash",
    "copied_from_share_token",
    "metadata_json",
}


def get(db: Session, activity_id: UUID) -> Optional[Activity]:
    try:
        return db.get(Activity, activity_id)
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to load activity", {"activity_id": str(activity_id)}) from exc


def find_by_share_token(db: Session, token: str) -> Optional[Activity]:
    try:
        return db.query(Activity).filter(Activity.share_token == token).one_or_none()
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to look up share token") from exc


def find_by_owner_and_content_hash(db: Session, user_id: UUID, content_hash: str) -> Optional[Activity]:
    """Return the owner's live (non-archived) activity with this content hash."""
    try:
        return (
            db.query(Activity)
            .filter(
                Activity.user_id == user_id,
                Activity.content_hash == content_hash,
                Activity.is_archived.is_(False),
            )
            .first()
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to look up existing copy") from exc


def find_active_copy(db: Session, user_id: UUID, share_token: str) -> Optional[Activity]:
    """Return the owner's live copy of a share token, whatever its content."""
    try:
        return (
            db.query(Activity)
            .filter(
                Activity.user_id == user_id,
                Activity.copied_from_share_token == share_token,
                Activity.is_archived.is_(False),
            )
            .order_by(desc(Activity.created_at))
            .first()
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to look up existing copy") from exc


def list_for_owner(db: Session, user_id: UUID, *, archived: bool = False) -> List[Activity]:
    try:
        return (
            db.query(Activity)
            .filter(Activity.user_id == user_id, Activity.is_archived.is_(archived))
            .order_by(desc(Activity.updated_at), desc(Activity.created_at))
            .all()
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to list activities", {"user_id": str(user_id)}) from exc


def create(
    db: Session,
    owner_id: Optional[UUID],
    fields: Dict[str, Any],
    seeds: Sequence[TaskSeed],
) -> Activity:
    """Insert an activity and its tasks in a single flush.

    Raises ConflictError when the owner already has a live activity with the
    same content hash. The session must be rolled back by the caller after
    any error.
    """
    unknown = set(fields) - _CREATE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported activity fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    if not values.get("content_hash"):
        values["content_hash"] = compute_content_hash(
            values["title"],
            values.get("description"),
            [seed.title for seed in seeds],
        )

    activity = Activity(user_id=owner_id, **values)
    db.add(activity)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Activity with identical content already exists",
            {"user_id": str(owner_id) if owner_id else None, "content_hash": values["content_hash"]},
        ) from exc
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to create activity") from exc

    task_store.create_many(db, activity, seeds)
    return activity


def archive(db: Session, activity_id: UUID) -> Activity:
    """Mark an activity archived. Never deletes it or its tasks."""
    activity = get(db, activity_id)
    if not activity:
        raise NotFoundError("Activity not found", {"activity_id": str(activity_id)})
    if activity.is_archived:
        return activity

    activity.is_archived = True
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to archive activity", {"activity_id": str(activity_id)}) from exc
    return activity


def ensure_share_token(db: Session, activity: Activity) -> str:
    """Give the activity an opaque share token if it does not have one yet."""
    if activity.share_token:
        return activity.share_token
    activity.share_token = secrets.token_urlsafe(settings.share_token_bytes)
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to generate share token", {"activity_id": str(activity.id)}) from exc
    return activity.share_token


def increment_view_count(db: Session, activity_id: UUID) -> bool:
    return _increment_counter(db, activity_id, "view_count")


def increment_adoption_count(db: Session, activity_id: UUID) -> bool:
    return _increment_counter(db, activity_id, "adoption_count")


def _increment_counter(db: Session, activity_id: UUID, column_name: str) -> bool:
    """Atomically bump a counter in its own transaction.

    Failures are logged and swallowed; the caller's operation has already
    committed and must not be affected.
    """
    column = getattr(Activity, column_name)
    try:
        db.query(Activity).filter(Activity.id == activity_id).update(
            {column: column + 1},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Unable to increment %s for activity %s", column_name, activity_id, exc_info=True)
        return False
    return True
