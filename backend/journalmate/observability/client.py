"""Opik SDK client used for plan tracing and metrics."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from opik import Opik

from journalmate.core.config import settings

logger = logging.getLogger(__name__)


class _OpikHolder:
    """Lazily builds one Opik client per process."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._client: Optional[Opik] = None
        self._attempted = False

    def get(self) -> Optional[Opik]:
        if self._client is not None or self._attempted:
            return self._client
        with self._lock:
            if not self._attempted:
                self._client = self._build()
                self._attempted = True
        return self._client

    def reset(self) -> None:
        with self._lock:
            self._client = None
            self._attempted = False

    @staticmethod
    def _build() -> Optional[Opik]:
        if not settings.opik_enabled:
            return None
        if not settings.opik_api_key:
            logger.warning("OPIK_ENABLED is set without OPIK_API_KEY; plan copy tracing stays off.")
            return None
        try:
            client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
        except Exception as exc:  # pragma: no cover - SDK failures must not block startup
            logger.warning("Failed to initialize Opik, tracing will be disabled: %s", exc)
            return None
        logger.info("Opik enabled (project=%s).", settings.opik_project)
        return client


_holder = _OpikHolder()


def init_opik() -> Optional[Opik]:
    """Initialize the Opik client once and return it."""
    return _holder.get()


def get_opik_client() -> Optional[Opik]:
    """Return the cached Opik client, or None when tracing is off."""
    return _holder.get()


def reset_opik() -> None:
    """Forget the cached client so the next call re-reads settings."""
    _holder.reset()
