"""Consecutive-day streak over completion history."""
from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from routine_engine.services.ledger import completion_day
from routine_engine.services.periods import DateLike, as_date, day_id
from routine_engine.services.routine_models import Completion


def streak(completions: Iterable[Completion], today: DateLike) -> int:
    """Count consecutive days with at least one completion, ending today or yesterday.

    A day with no completion yet does not break the streak while it is still
    "today": counting then starts from yesterday. Always recomputed from the
    full history.
    """
    active_days = {completion_day(completion) for completion in completions}
    if not active_days:
        return 0

    cursor = as_date(today)
    if day_id(cursor) not in active_days:
        cursor -= timedelta(days=1)

    count = 0
    while day_id(cursor) in active_days:
        count += 1
        cursor -= timedelta(days=1)
    return count
