"""ORM models exposed for metadata discovery."""
from journalmate.db.models.action_log import ActionLog
from journalmate.db.models.activity import ACTIVITY_STATUSES, Activity, ActivityStatus
from journalmate.db.models.task import Task
from journalmate.db.models.user import User

__all__ = [
    "ACTIVITY_STATUSES",
    "ActionLog",
    "Activity",
    "ActivityStatus",
    "Task",
    "User",
]
