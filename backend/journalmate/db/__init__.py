"""Database utilities and models."""

from journalmate.db.base import Base
from journalmate.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
