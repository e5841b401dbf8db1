"""Custom FastAPI middleware."""
from __future__ import annotations

from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from journalmate.core.context import acting_user_ctx_var, request_id_ctx_var


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Populate request.state.request_id and echo it back as X-Request-Id."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        token = request_id_ctx_var.set(request_id)
        user_token = acting_user_ctx_var.set(None)

        try:
            response = await call_next(request)
        finally:
            acting_user_ctx_var.reset(user_token)
            request_id_ctx_var.reset(token)

        response.headers["X-Request-Id"] = request_id
        return response
