"""Helpers for working with users."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from journalmate.db.models.user import User

logger = logging.getLogger(__name__)


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch an existing user or create the row on first write.

    Call this before staging other writes: losing an insert race rolls the
    session back.
    """
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
    logger.debug("Registered user %s", user_id)
    return user
