"""Domain errors raised by the plan services."""
from __future__ import annotations

from typing import Any, Mapping


class PlanCopyError(RuntimeError):
    """Base error carrying a machine-readable code and details."""

    code = "plan_error"

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(PlanCopyError):
    code = "not_found"


class ForbiddenError(PlanCopyError):
    code = "forbidden"


class InvalidCopyError(PlanCopyError):
    code = "invalid_copy"


class ConflictError(PlanCopyError):
    """Lost a race against the (owner, content hash) uniqueness constraint."""

    code = "conflict"


class PersistenceError(PlanCopyError):
    """Any other storage failure; safe for the caller to retry."""

    code = "persistence_error"
