"""Tests for due-date matching."""
from __future__ import annotations

from datetime import date, timedelta

from routine_engine.services.ledger import CompletionLedger
from routine_engine.services.periods import WEEKDAYS, Weekday, day_key
from routine_engine.services.recurrence import is_due
from routine_engine.services.routine_models import CommunicationPlan, RoutineTask

EVERY_DAY = CommunicationPlan(active_days=frozenset(WEEKDAYS))


def _days(start: date, count: int):
    return [start + timedelta(days=offset) for offset in range(count)]


def test_daily_task_follows_active_days_only() -> None:
    plan = CommunicationPlan(active_days=frozenset({Weekday.MON, Weekday.THU}))
    task = RoutineTask(title="Inbox", recurrence="daily", day_of_week="fri", week_of_month=3)

    for current in _days(date(2024, 6, 1), 28):
        assert is_due(task, current, plan) is (day_key(current) in plan.active_days)


def test_off_day_empties_daily_schedule() -> None:
    plan = CommunicationPlan(active_days=frozenset({Weekday.MON, Weekday.WED, Weekday.FRI}))
    task = RoutineTask(title="Post something", recurrence="daily")
    ledger = CompletionLedger()

    assert ledger.due_tasks_for(date(2024, 6, 4), [task], plan) == []
    assert ledger.due_tasks_for(date(2024, 6, 3), [task], plan) == [task]


def test_weekly_task_due_on_its_day_only() -> None:
    task = RoutineTask(title="Newsletter", recurrence="weekly", day_of_week=Weekday.FRI)

    due_days = [current for current in _days(date(2024, 6, 1), 21) if is_due(task, current, EVERY_DAY)]

    assert due_days == [date(2024, 6, 7), date(2024, 6, 14), date(2024, 6, 21)]


def test_weekly_task_accepts_legacy_tag() -> None:
    task = RoutineTask(title="Newsletter", recurrence="weekly", day_of_week="ven")

    assert is_due(task, date(2024, 6, 7), EVERY_DAY) is True


def test_monthly_task_without_day_covers_its_week_block() -> None:
    task = RoutineTask(title="Stats", recurrence="monthly", week_of_month=4)

    due_days = [current for current in _days(date(2024, 6, 1), 30) if is_due(task, current, EVERY_DAY)]

    assert due_days == _days(date(2024, 6, 22), 7)


def test_monthly_task_narrowed_by_day_of_week() -> None:
    task = RoutineTask(title="Reel", recurrence="monthly", week_of_month=2, day_of_week=Weekday.MON)

    due_days = [current for current in _days(date(2024, 6, 1), 30) if is_due(task, current, EVERY_DAY)]

    assert due_days == [date(2024, 6, 10)]


def test_fifth_week_task_skips_short_months() -> None:
    task = RoutineTask(title="Bonus", recurrence="monthly", week_of_month=5)

    assert not any(is_due(task, current, EVERY_DAY) for current in _days(date(2023, 2, 1), 28))
    assert is_due(task, date(2024, 2, 29), EVERY_DAY) is True


def test_malformed_tasks_are_never_due() -> None:
    tasks = [
        RoutineTask(title="Unknown", recurrence="fortnightly"),
        RoutineTask(title="Week six", recurrence="monthly", week_of_month=6),
        RoutineTask(title="No week", recurrence="monthly"),
        RoutineTask(title="Bad day", recurrence="weekly", day_of_week="xyz"),
    ]
    valid = RoutineTask(title="Inbox", recurrence="daily")

    for current in _days(date(2024, 6, 1), 35):
        assert [task for task in tasks if is_due(task, current, EVERY_DAY)] == []
    assert CompletionLedger().due_tasks_for(date(2024, 6, 3), tasks + [valid], EVERY_DAY) == [valid]


def test_missing_plan_or_inactive_task_is_not_due() -> None:
    task = RoutineTask(title="Inbox", recurrence="daily")
    inactive = RoutineTask(title="Paused", recurrence="daily", is_active=False)

    assert is_due(task, date(2024, 6, 3), None) is False
    assert is_due(inactive, date(2024, 6, 3), EVERY_DAY) is False
    assert is_due(task, date(2024, 6, 3), CommunicationPlan()) is False
