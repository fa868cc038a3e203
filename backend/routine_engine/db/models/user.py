"""User ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from routine_engine.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # Display locale for weekday labels; scheduling never reads it.
    locale = Column(String(length=8), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
