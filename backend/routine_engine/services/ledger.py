"""In-memory view over a user's completion records."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from routine_engine.services.periods import DateLike, Weekday, day_id, month_id, week_dates, week_id
from routine_engine.services.recurrence import is_due
from routine_engine.services.routine_models import (
    CommunicationPlan,
    Completion,
    Recurrence,
    RoutineTask,
    parse_recurrence,
)


def natural_period_key(task: RoutineTask, day: DateLike) -> str:
    """Key of the period a completion of ``task`` on ``day`` counts for.

    Daily tasks use the calendar day, monthly tasks the month and every other
    recurrence (weekly, or unknown values) the week.
    """
    recurrence = parse_recurrence(task.recurrence)
    if recurrence is Recurrence.DAILY:
        return day_id(day)
    if recurrence is Recurrence.MONTHLY:
        return month_id(day)
    return week_id(day)


def completion_day(completion: Completion) -> str:
    """Calendar day (``YYYY-MM-DD``) a completion was recorded on."""
    return day_id(completion.completed_at)


def _matches(task: RoutineTask, completion: Completion, key: str) -> bool:
    if completion.task_id != task.id:
        return False
    recurrence = parse_recurrence(task.recurrence)
    if recurrence is Recurrence.DAILY:
        return completion_day(completion) == key
    if recurrence is Recurrence.MONTHLY:
        return completion.month == key
    return completion.week == key


class CompletionLedger:
    """Answers "is task T done for period P" and derives due/done sets.

    The ledger is a snapshot of the stored completions. The toggle engine
    mutates it in step with the store so derived values (streak, celebration)
    reflect the latest toggle before the next reload.
    """

    def __init__(self, completions: Iterable[Completion] = ()):
        self._completions: List[Completion] = list(completions)

    @property
    def completions(self) -> List[Completion]:
        return list(self._completions)

    def __len__(self) -> int:
        return len(self._completions)

    def find(self, task: RoutineTask, day: DateLike) -> Optional[Completion]:
        key = natural_period_key(task, day)
        for completion in self._completions:
            if _matches(task, completion, key):
                return completion
        return None

    def is_completed(self, task: RoutineTask, day: DateLike) -> bool:
        return self.find(task, day) is not None

    def due_tasks_for(
        self,
        day: DateLike,
        tasks: Iterable[RoutineTask],
        plan: Optional[CommunicationPlan],
    ) -> List[RoutineTask]:
        return [task for task in tasks if is_due(task, day, plan)]

    def completion_count(
        self,
        day: DateLike,
        tasks: Iterable[RoutineTask],
        plan: Optional[CommunicationPlan],
    ) -> Tuple[int, int]:
        """Return ``(done, total)`` over the tasks due on ``day``."""
        due = self.due_tasks_for(day, tasks, plan)
        done = sum(1 for task in due if self.is_completed(task, day))
        return done, len(due)

    def week_schedule(
        self,
        day: DateLike,
        tasks: Iterable[RoutineTask],
        plan: Optional[CommunicationPlan],
    ) -> Dict[Weekday, List[RoutineTask]]:
        """Due tasks for each active weekday of the week containing ``day``.

        Each weekday is evaluated against its own date, so a monthly task only
        shows up on the days that fall inside its week-of-month block.
        """
        if plan is None:
            return {}
        task_list = list(tasks)
        return {
            weekday: self.due_tasks_for(current, task_list, plan)
            for weekday, current in week_dates(day).items()
            if weekday in plan.active_days
        }

    @staticmethod
    def month_tasks(tasks: Iterable[RoutineTask]) -> List[RoutineTask]:
        return [
            task
            for task in tasks
            if task.is_active and parse_recurrence(task.recurrence) is Recurrence.MONTHLY
        ]

    def completed_days(self) -> Set[str]:
        return {completion_day(completion) for completion in self._completions}

    def add(self, completion: Completion) -> None:
        self._completions.append(completion)

    def remove(self, completion_id: UUID) -> Optional[Completion]:
        for index, completion in enumerate(self._completions):
            if completion.id == completion_id:
                return self._completions.pop(index)
        return None

    def replace(self, completion_id: UUID, completion: Completion) -> None:
        self.remove(completion_id)
        self.add(completion)

    def purge_task(self, task_id: UUID) -> int:
        """Drop every completion of ``task_id``; returns how many were removed."""
        kept = [completion for completion in self._completions if completion.task_id != task_id]
        removed = len(self._completions) - len(kept)
        self._completions = kept
        return removed
