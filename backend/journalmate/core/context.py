"""Per-request context shared with log records and traces."""
from __future__ import annotations

from contextvars import ContextVar
from uuid import UUID

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
acting_user_ctx_var: ContextVar[str | None] = ContextVar("acting_user", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_acting_user() -> str | None:
    return acting_user_ctx_var.get()


def bind_acting_user(user_id: UUID | str | None) -> None:
    """Attach the acting user to the current request context for logging."""
    acting_user_ctx_var.set(str(user_id) if user_id else None)
