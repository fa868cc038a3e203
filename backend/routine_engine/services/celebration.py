"""End-of-day celebration: decide when it fires and record it."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from routine_engine.db.models.activity_log import ActivityLog
from routine_engine.observability.metrics import log_metric
from routine_engine.services.ledger import CompletionLedger
from routine_engine.services.routine_models import CommunicationPlan, RoutineTask
from routine_engine.services.streak import streak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Celebration:
    streak: int
    completed_count: int
    total_count: int


CelebrationCallback = Callable[[Celebration], None]


class CelebrationTrigger:
    """Fires ``callback`` when a completion finishes every task due today.

    ``evaluate`` is called once per toggle-on, after the new completion is in
    the ledger. Days with a single due task never celebrate.
    """

    def __init__(self, callback: Optional[CelebrationCallback] = None):
        self._callback = callback

    def evaluate(
        self,
        ledger: CompletionLedger,
        *,
        toggled_task: RoutineTask,
        tasks: Iterable[RoutineTask],
        plan: Optional[CommunicationPlan],
        today: date,
    ) -> Optional[Celebration]:
        due_today = ledger.due_tasks_for(today, tasks, plan)
        if len(due_today) <= 1:
            return None

        remaining = [
            task
            for task in due_today
            if task.id != toggled_task.id and not ledger.is_completed(task, today)
        ]
        if remaining:
            return None

        completed_count = sum(1 for task in due_today if ledger.is_completed(task, today))
        celebration = Celebration(
            streak=streak(ledger.completions, today),
            completed_count=completed_count,
            total_count=len(due_today),
        )
        if self._callback is not None:
            self._callback(celebration)
        return celebration


def record_celebration(
    db: Session,
    *,
    user_id: UUID,
    celebration: Celebration,
    request_id: str | None,
) -> None:
    """Persist a ``routine_day_completed`` activity entry for a celebration.

    Adds the row to the session; the caller owns the commit.
    """
    logger.info(
        "Routine day completed user=%s streak=%s tasks=%s/%s",
        user_id,
        celebration.streak,
        celebration.completed_count,
        celebration.total_count,
    )
    db.add(
        ActivityLog(
            user_id=user_id,
            action_type="routine_day_completed",
            action_payload={**asdict(celebration), "request_id": request_id or ""},
            reason="All tasks due today completed",
        )
    )
    log_metric("routines.celebration", 1, metadata={"user_id": str(user_id), "streak": celebration.streak})
