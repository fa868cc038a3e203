"""Routine views and task operations behind the routines API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from routine_engine.api.schemas.routines import (
    CategoryGroup,
    MonthRoutineResponse,
    RoutineTaskCreateRequest,
    RoutineTaskSummary,
    TodayRoutineResponse,
    WeekDayEntry,
    WeekRoutineResponse,
)
from routine_engine.core.config import settings
from routine_engine.db.models.activity_log import ActivityLog
from routine_engine.db.models.routine_task import RoutineTask as RoutineTaskRow
from routine_engine.db.models.user import User
from routine_engine.services.celebration import CelebrationCallback
from routine_engine.services.ledger import CompletionLedger, natural_period_key
from routine_engine.services.periods import (
    day_key,
    day_label,
    month_id,
    parse_weekday,
    parse_weekdays,
    week_dates,
    week_id,
    week_of_month,
    week_start,
)
from routine_engine.services.routine_generator import CATEGORY_ORDER, generate_routine_tasks, task_category
from routine_engine.services.routine_models import CommunicationPlan, RoutineTask
from routine_engine.services.routine_store import RoutineStore
from routine_engine.services.streak import streak
from routine_engine.services.toggle_engine import ToggleEngine, ToggleResult

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    pass


class TaskOwnershipError(PermissionError):
    pass


class TaskNotEditableError(ValueError):
    pass


@dataclass
class RoutineContext:
    user_id: UUID
    tasks: List[RoutineTask]
    plan: Optional[CommunicationPlan]
    ledger: CompletionLedger


@dataclass
class ToggleOutcome:
    task: RoutineTask
    result: ToggleResult
    period_key: str
    completed_count: int
    total_count: int


def load_routine_context(store: RoutineStore, user_id: UUID) -> RoutineContext:
    return RoutineContext(
        user_id=user_id,
        tasks=store.load_tasks(user_id),
        plan=store.load_plan(user_id),
        ledger=CompletionLedger(store.load_completions(user_id)),
    )


def resolve_locale(db: Session, user_id: UUID) -> str:
    user = db.get(User, user_id)
    if user is not None and user.locale:
        return user.locale
    return settings.default_locale


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def build_today_view(context: RoutineContext, now: datetime, *, locale: str, request_id: str) -> TodayRoutineResponse:
    today = now.date()
    plan = context.plan
    due = context.ledger.due_tasks_for(today, context.tasks, plan)
    summaries = [_summarize(task, context.ledger.is_completed(task, today)) for task in due]
    completed_count = sum(1 for summary in summaries if summary.completed)
    total_count = len(summaries)

    return TodayRoutineResponse(
        user_id=context.user_id,
        today=today,
        day=day_key(today),
        day_label=day_label(day_key(today), locale),
        has_plan=plan is not None,
        is_active_day=bool(plan and day_key(today) in plan.active_days),
        monthly_goal=plan.monthly_goal if plan else None,
        tasks=summaries,
        categories=_group_by_category(summaries),
        completed_count=completed_count,
        total_count=total_count,
        completion_percent=round(completed_count * 100 / total_count) if total_count else 0,
        total_minutes=sum(summary.duration_minutes for summary in summaries),
        streak=streak(context.ledger.completions, today),
        request_id=request_id,
    )


def build_week_view(context: RoutineContext, now: datetime, *, locale: str, request_id: str) -> WeekRoutineResponse:
    today = now.date()
    schedule = context.ledger.week_schedule(today, context.tasks, context.plan)
    dates = week_dates(today)

    days: List[WeekDayEntry] = []
    for weekday, tasks in schedule.items():
        current = dates[weekday]
        summaries = [_summarize(task, context.ledger.is_completed(task, current)) for task in tasks]
        days.append(
            WeekDayEntry(
                day=weekday,
                label=day_label(weekday, locale),
                calendar_date=current,
                is_today=current == today,
                tasks=summaries,
                completed_count=sum(1 for summary in summaries if summary.completed),
                total_count=len(summaries),
                minutes=sum(summary.duration_minutes for summary in summaries),
            )
        )

    return WeekRoutineResponse(
        user_id=context.user_id,
        week_id=week_id(today),
        week_start=week_start(today),
        days=days,
        total_minutes=sum(entry.minutes for entry in days),
        request_id=request_id,
    )


def build_month_view(context: RoutineContext, now: datetime, *, request_id: str) -> MonthRoutineResponse:
    today = now.date()
    tasks = context.ledger.month_tasks(context.tasks)
    summaries = [_summarize(task, context.ledger.is_completed(task, today)) for task in tasks]
    return MonthRoutineResponse(
        user_id=context.user_id,
        month_id=month_id(today),
        week_of_month=week_of_month(today),
        tasks=summaries,
        completed_count=sum(1 for summary in summaries if summary.completed),
        total_count=len(summaries),
        request_id=request_id,
    )


# ---------------------------------------------------------------------------
# Task operations
# ---------------------------------------------------------------------------


def toggle_task(
    db: Session,
    store: RoutineStore,
    *,
    user_id: UUID,
    task_id: UUID,
    now: datetime,
    request_id: str | None,
    on_celebrate: Optional[CelebrationCallback] = None,
) -> ToggleOutcome:
    """Flip the task's completion for today's natural period and audit it."""
    context = load_routine_context(store, user_id)
    task = _find_owned_task(db, context, task_id)

    engine = ToggleEngine(store, on_celebrate=on_celebrate)
    result = engine.toggle(context.ledger, task, tasks=context.tasks, plan=context.plan, now=now)
    period_key = natural_period_key(task, now.date())
    completed_count, total_count = context.ledger.completion_count(now.date(), context.tasks, context.plan)

    _log_action(
        db,
        user_id,
        "routine_task_completed" if result.completed else "routine_task_uncompleted",
        {
            "task_id": str(task.id),
            "period_key": period_key,
            "completion_id": str(result.completion.id) if result.completion else None,
            "streak": result.streak,
            "request_id": request_id or "",
        },
        reason="Routine completion toggled",
    )
    return ToggleOutcome(
        task=task,
        result=result,
        period_key=period_key,
        completed_count=completed_count,
        total_count=total_count,
    )


def add_custom_task(
    db: Session,
    store: RoutineStore,
    payload: RoutineTaskCreateRequest,
    *,
    request_id: str | None,
) -> RoutineTask:
    """Append a user-defined task after the existing ones."""
    existing = store.load_tasks(payload.user_id)
    task = store.insert_task(
        payload.user_id,
        RoutineTask(
            title=payload.title,
            task_type="custom",
            duration_minutes=payload.duration_minutes,
            recurrence=payload.recurrence,
            day_of_week=payload.day_of_week,
            week_of_month=payload.week_of_month,
            is_auto_generated=False,
            sort_order=len(existing),
        ),
    )
    _log_action(
        db,
        payload.user_id,
        "routine_task_created",
        {"task_id": str(task.id), "recurrence": task.recurrence, "request_id": request_id or ""},
        reason="Custom routine task added",
    )
    return task


def delete_custom_task(db: Session, store: RoutineStore, *, user_id: UUID, task_id: UUID, request_id: str | None) -> None:
    row = _owned_row(db, user_id, task_id)
    if row.is_auto_generated:
        raise TaskNotEditableError("Generated tasks follow the communication plan and cannot be deleted")
    store.delete_task(task_id)
    _log_action(
        db,
        user_id,
        "routine_task_deleted",
        {"task_id": str(task_id), "request_id": request_id or ""},
        reason="Custom routine task deleted",
    )


def set_task_active(
    db: Session,
    store: RoutineStore,
    *,
    user_id: UUID,
    task_id: UUID,
    active: bool,
    request_id: str | None,
) -> int:
    """Activate or deactivate a task; deactivation drops its completions."""
    row = _owned_row(db, user_id, task_id)
    if bool(row.is_active) == active:
        return 0
    purged = store.set_task_active(task_id, active)
    logger.info("Routine task %s active=%s (%s completions removed)", task_id, active, purged)
    _log_action(
        db,
        user_id,
        "routine_task_activated" if active else "routine_task_deactivated",
        {"task_id": str(task_id), "completions_removed": purged, "request_id": request_id or ""},
        reason="Routine task active flag changed",
    )
    return purged


def reorder_tasks(db: Session, store: RoutineStore, *, user_id: UUID, task_ids: Sequence[UUID]) -> None:
    for task_id in task_ids:
        _owned_row(db, user_id, task_id)
    store.update_task_order(user_id, list(dict.fromkeys(task_ids)))


def save_plan_and_regenerate(
    db: Session,
    store: RoutineStore,
    *,
    user_id: UUID,
    plan: CommunicationPlan,
    request_id: str | None,
) -> tuple[CommunicationPlan, List[RoutineTask]]:
    """Upsert the plan and replace the auto-generated routine built from it."""
    saved = store.save_plan(user_id, plan)
    generated = store.replace_generated_tasks(user_id, generate_routine_tasks(saved))
    _log_action(
        db,
        user_id,
        "communication_plan_saved",
        {
            "active_days": [day.value for day in parse_weekdays(saved.active_days)],
            "channels": list(saved.channels),
            "generated_tasks": len(generated),
            "request_id": request_id or "",
        },
        reason="Communication plan saved; routine regenerated",
    )
    return saved, generated


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def summarize_task(task: RoutineTask, completed: bool = False) -> RoutineTaskSummary:
    return _summarize(task, completed)


def _summarize(task: RoutineTask, completed: bool) -> RoutineTaskSummary:
    weekday = parse_weekday(task.day_of_week)
    return RoutineTaskSummary(
        id=task.id,
        title=task.title,
        task_type=task.task_type,
        category=task_category(task.task_type),
        channel=task.channel,
        duration_minutes=task.duration_minutes,
        recurrence=str(getattr(task.recurrence, "value", task.recurrence)),
        day_of_week=weekday.value if weekday else None,
        week_of_month=task.week_of_month,
        linked_module=task.linked_module,
        is_auto_generated=task.is_auto_generated,
        sort_order=task.sort_order,
        completed=completed,
    )


def _group_by_category(summaries: List[RoutineTaskSummary]) -> List[CategoryGroup]:
    grouped: Dict[str, List[RoutineTaskSummary]] = {}
    for summary in summaries:
        grouped.setdefault(summary.category, []).append(summary)
    return [
        CategoryGroup(
            category=category,
            minutes=sum(item.duration_minutes for item in grouped[category]),
            tasks=grouped[category],
        )
        for category in CATEGORY_ORDER
        if category in grouped
    ]


def _owned_row(db: Session, user_id: UUID, task_id: UUID) -> RoutineTaskRow:
    row = db.get(RoutineTaskRow, task_id)
    if row is None:
        raise TaskNotFoundError(f"Routine task {task_id} not found")
    if row.user_id != user_id:
        raise TaskOwnershipError("Task does not belong to user")
    return row


def _find_owned_task(db: Session, context: RoutineContext, task_id: UUID) -> RoutineTask:
    for task in context.tasks:
        if task.id == task_id:
            return task
    row = _owned_row(db, context.user_id, task_id)
    # Owned but inactive: not schedulable, so not toggleable either.
    raise TaskNotFoundError(f"Routine task {row.id} is inactive")


def _log_action(db: Session, user_id: UUID, action_type: str, payload: dict, *, reason: str) -> None:
    db.add(
        ActivityLog(
            user_id=user_id,
            action_type=action_type,
            action_payload=payload,
            reason=reason,
        )
    )
