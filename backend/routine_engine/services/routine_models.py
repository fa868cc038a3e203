"""Plain data carried through the scheduling engine.

These are decoupled from the ORM rows so the engine can run over any store
(SQL, in-memory fakes in tests) without a session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple
from uuid import UUID, uuid4

from routine_engine.services.periods import Weekday


class Recurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def parse_recurrence(value: object) -> Optional[Recurrence]:
    if isinstance(value, Recurrence):
        return value
    try:
        return Recurrence(str(value).strip().lower())
    except ValueError:
        return None


@dataclass
class RoutineTask:
    title: str
    recurrence: str
    id: UUID = field(default_factory=uuid4)
    task_type: str = "custom"
    channel: Optional[str] = None
    duration_minutes: int = 15
    # Weekday member, or the raw tag of a malformed row (never due).
    day_of_week: Optional[str] = None
    week_of_month: Optional[int] = None
    linked_module: Optional[str] = None
    is_auto_generated: bool = False
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class CommunicationPlan:
    active_days: FrozenSet[Weekday] = frozenset()
    daily_time_minutes: int = 30
    monthly_goal: str = "visibility"
    channels: Tuple[str, ...] = ()
    instagram_posts_week: int = 0
    instagram_stories_week: int = 0
    instagram_reels_month: int = 0
    linkedin_posts_week: int = 0
    newsletter_frequency: str = "none"


@dataclass(frozen=True)
class Completion:
    task_id: UUID
    completed_at: datetime
    week: str
    month: str
    period_key: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
