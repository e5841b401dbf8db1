"""Public view of shared plans."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from journalmate.api.schemas.activity import ActivityPayload, SharedActivityResponse
from journalmate.api.schemas.task import TaskPayload
from journalmate.db.deps import get_db
from journalmate.observability.tracing import trace
from journalmate.services import activity_store, task_store

router = APIRouter()


@router.get("/share/{share_token}", response_model=SharedActivityResponse, tags=["share"])
def view_shared_activity(
    share_token: str,
    http_request: Request,
    db: Session = Depends(get_db),
) -> SharedActivityResponse:
    """Return a public plan by its share token and count the view."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("share.view", metadata={"share_token": share_token}, request_id=request_id):
        activity = activity_store.find_by_share_token(db, share_token)
        if not activity:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Shared activity not found or link has expired",
            )
        if not activity.is_public:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This activity is not public")

        tasks = task_store.list_by_activity(db, activity.id)
        activity_store.increment_view_count(db, activity.id)

    metadata = activity.metadata_json or {}
    plan_summary = metadata.get("plan_summary")
    if not isinstance(plan_summary, str) or not plan_summary.strip():
        plan_summary = f"{activity.title} - A {activity.category} plan with {len(tasks)} tasks"

    return SharedActivityResponse(
        activity=ActivityPayload.model_validate(activity),
        tasks=[TaskPayload.model_validate(task) for task in tasks],
        plan_summary=plan_summary,
        request_id=request_id or "",
    )
