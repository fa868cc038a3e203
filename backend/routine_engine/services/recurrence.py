"""Decide whether a routine task is due on a given day."""
from __future__ import annotations

from typing import Optional

from routine_engine.services.periods import DateLike, day_key, parse_weekday, week_of_month
from routine_engine.services.routine_models import CommunicationPlan, Recurrence, RoutineTask, parse_recurrence

MIN_WEEK_OF_MONTH = 1
MAX_WEEK_OF_MONTH = 5


def is_due(task: RoutineTask, day: DateLike, plan: Optional[CommunicationPlan]) -> bool:
    """Return True when ``task`` should be performed on ``day``.

    A day missing from the plan's active days has nothing due. Malformed tasks
    (unknown recurrence, week of month outside 1-5) are never due; this
    function does not raise.
    """
    if plan is None or not task.is_active:
        return False

    today = day_key(day)
    if today not in plan.active_days:
        return False

    recurrence = parse_recurrence(task.recurrence)
    if recurrence is Recurrence.DAILY:
        return True
    if recurrence is Recurrence.WEEKLY:
        return parse_weekday(task.day_of_week) == today
    if recurrence is Recurrence.MONTHLY:
        target_week = task.week_of_month
        if not isinstance(target_week, int) or not MIN_WEEK_OF_MONTH <= target_week <= MAX_WEEK_OF_MONTH:
            return False
        if target_week != week_of_month(day):
            return False
        if task.day_of_week is None:
            return True
        return parse_weekday(task.day_of_week) == today
    return False
