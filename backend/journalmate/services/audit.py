"""Audit trail helpers."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from sqlalchemy.orm import Session

from journalmate.db.models.action_log import ActionLog


def log_action(
    db: Session,
    *,
    user_id: UUID,
    action_type: str,
    payload: Dict[str, Any],
    reason: str | None = None,
) -> ActionLog:
    """Stage an audit row in the caller's transaction."""
    log = ActionLog(
        user_id=user_id,
        action_type=action_type,
        action_payload=payload,
        reason=reason,
    )
    db.add(log)
    return log
