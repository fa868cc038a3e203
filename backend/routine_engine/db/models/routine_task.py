"""Routine task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from routine_engine.db.base import Base


class RoutineTask(Base):
    __tablename__ = "routine_tasks"
    __table_args__ = (
        Index("ix_routine_tasks_user_id", "user_id"),
        Index("ix_routine_tasks_user_active", "user_id", "is_active"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    task_type = Column(String(length=50), nullable=False, server_default=sa_text("'custom'"))
    channel = Column(String(length=50), nullable=True)
    duration_minutes = Column(Integer, nullable=False, server_default=sa_text("15"))
    recurrence = Column(String(length=16), nullable=False)
    day_of_week = Column(String(length=3), nullable=True)
    week_of_month = Column(Integer, nullable=True)
    linked_module = Column(Text, nullable=True)
    is_auto_generated = Column(Boolean, nullable=False, server_default=sa_text("false"))
    sort_order = Column(Integer, nullable=False, server_default=sa_text("0"))
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
