"""Task API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from journalmate.api.errors import to_http_exception
from journalmate.api.schemas.task import TaskUpdateRequest, TaskUpdateResponse
from journalmate.core.context import bind_acting_user
from journalmate.db.deps import get_db
from journalmate.db.models.task import Task
from journalmate.observability.metrics import log_metric
from journalmate.observability.tracing import trace
from journalmate.services import task_store
from journalmate.services.audit import log_action
from journalmate.services.errors import PlanCopyError

router = APIRouter()


@router.patch("/tasks/{task_id}", response_model=TaskUpdateResponse, tags=["tasks"])
def update_task_completion(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskUpdateResponse:
    """Mark a task complete or incomplete."""
    bind_acting_user(payload.user_id)
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")

    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/tasks/{task_id}",
        "task_id": str(task_id),
        "completed": payload.completed,
        "request_id": request_id,
    }

    start_time = datetime.now(timezone.utc)
    try:
        with trace(
            "task.complete",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            task, changed = task_store.set_completed(db, task_id, payload.completed)
            if changed:
                log_action(
                    db,
                    user_id=payload.user_id,
                    action_type="task_completed" if payload.completed else "task_uncompleted",
                    payload={
                        "task_id": str(task.id),
                        "activity_id": str(task.activity_id),
                        "completed": payload.completed,
                        "request_id": request_id,
                    },
                    reason="Task completion toggled",
                )
            db.commit()
    except PlanCopyError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except Exception:
        db.rollback()
        raise

    latency_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    log_metric("task.complete.changed", 1 if changed else 0, metadata={"task_id": str(task_id)})
    log_metric("task.complete.latency_ms", latency_ms, metadata={"task_id": str(task_id)})

    return TaskUpdateResponse(
        id=task.id,
        completed=bool(task.completed),
        completed_at=task.completed_at,
        request_id=request_id or "",
    )
