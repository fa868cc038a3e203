"""Tests for the consecutive-day streak."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from uuid import uuid4

from routine_engine.services.periods import month_id, week_id
from routine_engine.services.routine_models import Completion
from routine_engine.services.streak import streak

TODAY = datetime(2024, 6, 5, 12, 0)


def _completion(day: date, hour: int = 9) -> Completion:
    return Completion(
        task_id=uuid4(),
        completed_at=datetime(day.year, day.month, day.day, hour),
        week=week_id(day),
        month=month_id(day),
        period_key=day.isoformat(),
    )


def test_no_history_is_zero() -> None:
    assert streak([], TODAY) == 0


def test_pending_today_keeps_yesterdays_run() -> None:
    completions = [_completion(date(2024, 6, 4)), _completion(date(2024, 6, 3))]

    assert streak(completions, TODAY) == 2


def test_completion_today_extends_run() -> None:
    completions = [_completion(date(2024, 6, 5)), _completion(date(2024, 6, 4)), _completion(date(2024, 6, 3))]

    assert streak(completions, TODAY) == 3


def test_multiple_completions_on_one_day_count_once() -> None:
    completions = [_completion(date(2024, 6, 4), hour) for hour in (8, 12, 20)]

    assert streak(completions, TODAY) == 1


def test_gap_before_yesterday_resets() -> None:
    assert streak([_completion(date(2024, 6, 3))], TODAY) == 0


def test_streak_grows_with_consecutive_days() -> None:
    completions = []
    previous = 0
    for offset in range(5):
        completions.append(_completion(date(2024, 6, 5) - timedelta(days=offset)))
        value = streak(completions, TODAY)
        assert value >= previous
        previous = value
    assert previous == 5


def test_removing_middle_day_keeps_recent_run() -> None:
    days = [date(2024, 6, 1) + timedelta(days=offset) for offset in range(5)]
    completions = [_completion(day) for day in days if day != date(2024, 6, 3)]

    assert streak(completions, TODAY) == 2
