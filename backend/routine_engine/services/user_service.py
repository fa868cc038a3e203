"""Helpers for working with users."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from routine_engine.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID, *, locale: Optional[str] = None) -> User:
    """Fetch an existing user or create a new row safely.

    ``locale`` is only applied to new rows or rows that have none yet.
    """
    user = db.get(User, user_id)
    if user:
        if locale and not user.locale:
            user.locale = locale
            db.add(user)
        return user

    user = User(id=user_id, locale=locale)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
