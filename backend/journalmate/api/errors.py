"""Translate domain errors into HTTP responses."""
from __future__ import annotations

from fastapi import HTTPException, status

from journalmate.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCopyError,
    NotFoundError,
    PersistenceError,
    PlanCopyError,
)

_STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidCopyError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(exc: PlanCopyError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(exc, PersistenceError):
        detail = {"error": exc.message, "retryable": True, "code": exc.code}
    else:
        detail = exc.message
    return HTTPException(status_code=status_code, detail=detail)
