"""Flip a routine task's completion for its current natural period."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from routine_engine.services.celebration import Celebration, CelebrationCallback, CelebrationTrigger
from routine_engine.services.ledger import CompletionLedger, natural_period_key
from routine_engine.services.periods import month_id, week_id
from routine_engine.services.routine_models import CommunicationPlan, Completion, RoutineTask
from routine_engine.services.routine_store import DuplicateCompletionError, RoutineStore
from routine_engine.services.streak import streak

logger = logging.getLogger(__name__)


class ToggleError(RuntimeError):
    """The completion write failed; the ledger was left unchanged."""


@dataclass
class ToggleResult:
    completion: Optional[Completion]
    streak: int
    celebration: Optional[Celebration] = None

    @property
    def completed(self) -> bool:
        return self.completion is not None


class ToggleEngine:
    """Insert-or-delete the completion of a task for the period containing ``day``.

    The engine keeps no state between calls: each toggle works on the ledger it
    is handed, which is updated in step with the store. Calling ``toggle``
    twice in a row restores the original state.
    """

    def __init__(self, store: RoutineStore, on_celebrate: Optional[CelebrationCallback] = None):
        self.store = store
        self.trigger = CelebrationTrigger(on_celebrate)

    def toggle(
        self,
        ledger: CompletionLedger,
        task: RoutineTask,
        *,
        tasks: Iterable[RoutineTask],
        plan: Optional[CommunicationPlan],
        now: datetime,
        day: Optional[date] = None,
    ) -> ToggleResult:
        target_day = day or now.date()
        today = now.date()
        key = natural_period_key(task, target_day)

        existing = ledger.find(task, target_day)
        if existing is not None:
            self._delete(ledger, existing)
            logger.debug("Toggled off task %s for %s", task.id, key)
            return ToggleResult(completion=None, streak=streak(ledger.completions, today))

        # Backfilled days keep the time of day so the day key matches target_day.
        completed_at = now if target_day == today else datetime.combine(target_day, now.timetz())
        candidate = Completion(
            task_id=task.id,
            completed_at=completed_at,
            week=week_id(target_day),
            month=month_id(target_day),
            period_key=key,
        )
        ledger.add(candidate)
        try:
            stored = self.store.insert_completion(candidate)
        except DuplicateCompletionError:
            ledger.remove(candidate.id)
            stored = self.store.find_completion(task.id, key)
            if stored is not None:
                ledger.add(stored)
            logger.info("Task %s already completed for %s; keeping stored record", task.id, key)
            return ToggleResult(completion=stored, streak=streak(ledger.completions, today))
        except Exception as exc:
            ledger.remove(candidate.id)
            logger.warning("Completion write failed for task %s (%s): %s", task.id, key, exc)
            raise ToggleError(f"Could not record completion for task {task.id}") from exc

        ledger.replace(candidate.id, stored)
        logger.debug("Toggled on task %s for %s", task.id, key)

        celebration = None
        # Backfilling another day cannot finish today.
        if target_day == today:
            celebration = self.trigger.evaluate(
                ledger,
                toggled_task=task,
                tasks=tasks,
                plan=plan,
                today=today,
            )
        return ToggleResult(
            completion=stored,
            streak=streak(ledger.completions, today),
            celebration=celebration,
        )

    def _delete(self, ledger: CompletionLedger, completion: Completion) -> None:
        try:
            self.store.delete_completion(completion.id)
        except Exception as exc:
            logger.warning("Completion delete failed for %s: %s", completion.id, exc)
            raise ToggleError(f"Could not remove completion {completion.id}") from exc
        ledger.remove(completion.id)
