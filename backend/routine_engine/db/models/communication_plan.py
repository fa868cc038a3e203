"""Communication plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from routine_engine.db.base import Base
from routine_engine.db.types import StringList


class CommunicationPlan(Base):
    __tablename__ = "communication_plans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    daily_time_minutes = Column(Integer, nullable=False, server_default=sa_text("30"))
    active_days = Column(StringList, nullable=False, default=list)
    monthly_goal = Column(String(length=50), nullable=False, server_default=sa_text("'visibility'"))
    channels = Column(StringList, nullable=False, default=list)
    instagram_posts_week = Column(Integer, nullable=False, server_default=sa_text("0"))
    instagram_stories_week = Column(Integer, nullable=False, server_default=sa_text("0"))
    instagram_reels_month = Column(Integer, nullable=False, server_default=sa_text("0"))
    linkedin_posts_week = Column(Integer, nullable=False, server_default=sa_text("0"))
    newsletter_frequency = Column(String(length=20), nullable=False, server_default=sa_text("'none'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
