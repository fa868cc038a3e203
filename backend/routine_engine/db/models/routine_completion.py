"""Routine completion ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from routine_engine.db.base import Base


class RoutineCompletion(Base):
    __tablename__ = "routine_completions"
    __table_args__ = (
        # At most one completion per task and natural period (day, week or month key).
        UniqueConstraint("routine_task_id", "period_key", name="uq_routine_completions_task_period"),
        Index("ix_routine_completions_user_id", "user_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    routine_task_id = Column(
        UUID(as_uuid=True),
        ForeignKey("routine_tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed_at = Column(DateTime(timezone=True), nullable=False)
    week = Column(String(length=8), nullable=False)
    month = Column(String(length=7), nullable=False)
    period_key = Column(String(length=10), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
