"""Activity (plan) API routes."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from journalmate.api.errors import to_http_exception
from journalmate.api.schemas.activity import (
    ActivityCopyRequest,
    ActivityCopyResponse,
    ActivityCreateRequest,
    ActivityDetail,
    ActivityOwnerRequest,
    ActivityPayload,
    DuplicateCopyResponse,
    ExistingActivityRef,
    ShareLinkResponse,
)
from journalmate.api.schemas.task import TaskPayload
from journalmate.core.context import bind_acting_user
from journalmate.db.deps import get_db
from journalmate.db.models.activity import Activity
from journalmate.observability.metrics import log_metric
from journalmate.observability.tracing import trace
from journalmate.services import activity_store, task_store
from journalmate.services.activity_copy import DuplicateDetected, copy_activity
from journalmate.services.audit import log_action
from journalmate.services.errors import ConflictError, PlanCopyError
from journalmate.services.task_store import TaskSeed
from journalmate.services.user_service import get_or_create_user

router = APIRouter()


@router.post(
    "/activities/copy/{share_token}",
    response_model=ActivityCopyResponse,
    responses={status.HTTP_409_CONFLICT: {"model": DuplicateCopyResponse}},
    tags=["activities"],
)
def copy_shared_activity(
    share_token: str,
    payload: ActivityCopyRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Copy a shared plan into the user's account, or replace an earlier copy."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_acting_user(payload.user_id)
    metadata: Dict[str, Any] = {
        "route": "/activities/copy/{share_token}",
        "share_token": share_token,
        "force_update": payload.force_update,
        "request_id": request_id,
    }

    outcome_label = "error"
    start = perf_counter()
    try:
        with trace(
            "activity.copy",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            outcome = copy_activity(
                db,
                share_token,
                payload.user_id,
                force_update=payload.force_update,
                request_id=request_id,
            )
            outcome_label = "duplicate" if isinstance(outcome, DuplicateDetected) else "copied"
    except ConflictError as exc:
        outcome_label = exc.code
        log_metric("activity.copy.duplicate", 1, metadata={"user_id": str(payload.user_id), "conflict": True})
        body = DuplicateCopyResponse(
            error=exc.message,
            message="This plan was just copied by another request. Refresh to see your copy.",
            request_id=request_id or "",
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=body.model_dump(mode="json", by_alias=True),
        )
    except PlanCopyError as exc:
        outcome_label = exc.code
        raise to_http_exception(exc) from exc
    finally:
        latency_ms = (perf_counter() - start) * 1000
        log_metric("activity.copy.latency_ms", latency_ms, metadata={"outcome": outcome_label})

    if isinstance(outcome, DuplicateDetected):
        log_metric(
            "activity.copy.duplicate",
            1,
            metadata={"user_id": str(payload.user_id), "conflict": outcome.conflict},
        )
        body = DuplicateCopyResponse(
            existing_activity=ExistingActivityRef(id=outcome.existing_activity_id, title=outcome.existing_title),
            message="You already have this plan. Would you like to update it with the latest version?",
            request_id=request_id or "",
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=body.model_dump(mode="json", by_alias=True),
        )

    log_metric(
        "activity.copy.success",
        1,
        metadata={"user_id": str(payload.user_id), "is_update": outcome.is_update},
    )
    if outcome.is_update:
        log_metric("activity.copy.preserved_progress", outcome.preserved_progress)
        message = (
            f"Update complete! {outcome.preserved_progress} completed tasks preserved. "
            "Previous version moved to History."
        )
    else:
        message = "Activity copied successfully!"

    return ActivityCopyResponse(
        activity=ActivityPayload.model_validate(outcome.activity),
        tasks=[TaskPayload.model_validate(task) for task in outcome.tasks],
        is_update=outcome.is_update,
        preserved_progress=outcome.preserved_progress,
        message=message,
        request_id=request_id or "",
    )


@router.post(
    "/activities",
    response_model=ActivityDetail,
    status_code=status.HTTP_201_CREATED,
    tags=["activities"],
)
def create_activity_endpoint(
    payload: ActivityCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ActivityDetail:
    """Create a plan with its tasks for the user."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_acting_user(payload.user_id)
    seeds = [
        TaskSeed(
            title=task.title,
            description=task.description,
            category=task.category,
            priority=task.priority,
            due_date=task.due_date,
        )
        for task in payload.tasks
    ]

    try:
        with trace(
            "activity.create",
            metadata={"route": "/activities", "task_count": len(seeds)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            activity = activity_store.create(
                db,
                payload.user_id,
                {
                    "title": payload.title,
                    "description": payload.description,
                    "category": payload.category,
                },
                seeds,
            )
            log_action(
                db,
                user_id=payload.user_id,
                action_type="activity_created",
                payload={"activity_id": str(activity.id), "task_count": len(seeds), "request_id": request_id},
                reason="Plan created manually",
            )
            db.commit()
    except ConflictError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have an identical plan",
        ) from exc
    except PlanCopyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except Exception:
        db.rollback()
        raise

    log_metric("activity.create.success", 1, metadata={"task_count": len(seeds)})
    return _serialize_detail(db, activity)


@router.get("/activities", response_model=List[ActivityPayload], tags=["activities"])
def list_activities(
    user_id: UUID = Query(..., description="User ID owning the plans"),
    db: Session = Depends(get_db),
) -> List[ActivityPayload]:
    """List the user's live (non-archived) plans."""
    bind_acting_user(user_id)
    with trace("activity.list", metadata={"archived": False}, user_id=str(user_id)):
        activities = activity_store.list_for_owner(db, user_id, archived=False)
    return [ActivityPayload.model_validate(activity) for activity in activities]


@router.get("/activities/history", response_model=List[ActivityPayload], tags=["activities"])
def list_activity_history(
    user_id: UUID = Query(..., description="User ID owning the plans"),
    db: Session = Depends(get_db),
) -> List[ActivityPayload]:
    """List plans the user archived or replaced with a newer copy."""
    bind_acting_user(user_id)
    with trace("activity.history", metadata={"archived": True}, user_id=str(user_id)):
        activities = activity_store.list_for_owner(db, user_id, archived=True)
    return [ActivityPayload.model_validate(activity) for activity in activities]


@router.get("/activities/{activity_id}", response_model=ActivityDetail, tags=["activities"])
def get_activity(
    activity_id: UUID,
    user_id: UUID = Query(..., description="User ID requesting the plan"),
    db: Session = Depends(get_db),
) -> ActivityDetail:
    """Return one of the user's plans with its tasks."""
    bind_acting_user(user_id)
    activity = _get_owned_activity(db, activity_id, user_id)
    return _serialize_detail(db, activity)


@router.patch("/activities/{activity_id}/archive", response_model=ActivityPayload, tags=["activities"])
def archive_activity(
    activity_id: UUID,
    payload: ActivityOwnerRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ActivityPayload:
    """Move a plan to history. Its tasks are kept."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_acting_user(payload.user_id)
    activity = _get_owned_activity(db, activity_id, payload.user_id)

    try:
        with trace(
            "activity.archive",
            metadata={"activity_id": str(activity_id)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            was_archived = bool(activity.is_archived)
            activity_store.archive(db, activity_id)
            if not was_archived:
                log_action(
                    db,
                    user_id=payload.user_id,
                    action_type="activity_archived",
                    payload={"activity_id": str(activity_id), "request_id": request_id},
                    reason="Plan archived by user",
                )
            db.commit()
    except PlanCopyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except Exception:
        db.rollback()
        raise

    return ActivityPayload.model_validate(activity)


@router.post("/activities/{activity_id}/share", response_model=ShareLinkResponse, tags=["activities"])
def share_activity(
    activity_id: UUID,
    payload: ActivityOwnerRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ShareLinkResponse:
    """Make a plan public and return the token others can copy it with."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_acting_user(payload.user_id)
    activity = _get_owned_activity(db, activity_id, payload.user_id)
    if activity.is_archived:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Archived plans cannot be shared")

    try:
        activity.is_public = True
        token = activity_store.ensure_share_token(db, activity)
        db.commit()
    except PlanCopyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SQLAlchemyError:
        db.rollback()
        raise

    log_metric("activity.share.success", 1, metadata={"activity_id": str(activity_id)})
    return ShareLinkResponse(
        activity_id=activity_id,
        share_token=token,
        share_path=f"/share/{token}",
        request_id=request_id or "",
    )


def _get_owned_activity(db: Session, activity_id: UUID, user_id: UUID) -> Activity:
    activity = activity_store.get(db, activity_id)
    if not activity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    if activity.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Activity does not belong to user")
    return activity


def _serialize_detail(db: Session, activity: Activity) -> ActivityDetail:
    tasks = task_store.list_by_activity(db, activity.id)
    base = ActivityPayload.model_validate(activity)
    return ActivityDetail(
        **base.model_dump(),
        tasks=[TaskPayload.model_validate(task) for task in tasks],
    )
