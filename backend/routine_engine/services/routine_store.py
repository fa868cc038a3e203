"""Persistence collaborator for routine tasks, completions and plans."""
from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from routine_engine.db.models.communication_plan import CommunicationPlan as CommunicationPlanRow
from routine_engine.db.models.routine_completion import RoutineCompletion as RoutineCompletionRow
from routine_engine.db.models.routine_task import RoutineTask as RoutineTaskRow
from routine_engine.services.periods import parse_weekday, parse_weekdays
from routine_engine.services.routine_models import CommunicationPlan, Completion, RoutineTask

logger = logging.getLogger(__name__)


class DuplicateCompletionError(Exception):
    """A completion already exists for the same task and natural period."""

    def __init__(self, task_id: UUID, period_key: str | None):
        super().__init__(f"Completion already recorded for task {task_id} ({period_key})")
        self.task_id = task_id
        self.period_key = period_key


class RoutineStore:
    """Base interface for routine persistence backends."""

    def load_tasks(self, user_id: UUID) -> List[RoutineTask]:
        raise NotImplementedError

    def load_completions(self, user_id: UUID) -> List[Completion]:
        raise NotImplementedError

    def load_plan(self, user_id: UUID) -> Optional[CommunicationPlan]:
        raise NotImplementedError

    def find_completion(self, task_id: UUID, period_key: str) -> Optional[Completion]:
        raise NotImplementedError

    def insert_completion(self, completion: Completion) -> Completion:
        """Store ``completion``; raise DuplicateCompletionError on a period conflict."""
        raise NotImplementedError

    def delete_completion(self, completion_id: UUID) -> None:
        raise NotImplementedError

    def insert_task(self, user_id: UUID, task: RoutineTask) -> RoutineTask:
        raise NotImplementedError

    def delete_task(self, task_id: UUID) -> None:
        """Delete a task together with its completions."""
        raise NotImplementedError

    def set_task_active(self, task_id: UUID, active: bool) -> int:
        """Flip ``is_active``; deactivation purges completions. Returns purged count."""
        raise NotImplementedError

    def update_task_order(self, user_id: UUID, ordered_ids: Sequence[UUID]) -> None:
        raise NotImplementedError

    def save_plan(self, user_id: UUID, plan: CommunicationPlan) -> CommunicationPlan:
        raise NotImplementedError

    def replace_generated_tasks(self, user_id: UUID, tasks: Iterable[RoutineTask]) -> List[RoutineTask]:
        """Swap every auto-generated task (and its completions) for ``tasks``."""
        raise NotImplementedError


class SqlRoutineStore(RoutineStore):
    """SQLAlchemy-backed store. Flushes writes; the caller owns the commit.

    Completion timestamps are returned in ``zone`` so their date portion is the
    user's calendar day. Naive values (SQLite) are taken as already local.
    """

    def __init__(self, db: Session, zone: tzinfo):
        self.db = db
        self.zone = zone

    # -- reads ------------------------------------------------------------

    def load_tasks(self, user_id: UUID) -> List[RoutineTask]:
        rows = (
            self.db.query(RoutineTaskRow)
            .filter(RoutineTaskRow.user_id == user_id, RoutineTaskRow.is_active.is_(True))
            .order_by(asc(RoutineTaskRow.sort_order), asc(RoutineTaskRow.created_at))
            .all()
        )
        return [_task_from_row(row) for row in rows]

    def load_completions(self, user_id: UUID) -> List[Completion]:
        rows = (
            self.db.query(RoutineCompletionRow)
            .filter(RoutineCompletionRow.user_id == user_id)
            .order_by(asc(RoutineCompletionRow.completed_at))
            .all()
        )
        return [self._completion_from_row(row) for row in rows]

    def load_plan(self, user_id: UUID) -> Optional[CommunicationPlan]:
        row = self.db.query(CommunicationPlanRow).filter(CommunicationPlanRow.user_id == user_id).one_or_none()
        if row is None:
            return None
        return _plan_from_row(row)

    def find_completion(self, task_id: UUID, period_key: str) -> Optional[Completion]:
        row = (
            self.db.query(RoutineCompletionRow)
            .filter(
                RoutineCompletionRow.routine_task_id == task_id,
                RoutineCompletionRow.period_key == period_key,
            )
            .one_or_none()
        )
        return self._completion_from_row(row) if row else None

    # -- completion writes -------------------------------------------------

    def insert_completion(self, completion: Completion) -> Completion:
        task_row = self.db.get(RoutineTaskRow, completion.task_id)
        if task_row is None:
            raise LookupError(f"Routine task {completion.task_id} not found")

        row = RoutineCompletionRow(
            id=completion.id,
            user_id=task_row.user_id,
            routine_task_id=completion.task_id,
            completed_at=completion.completed_at,
            week=completion.week,
            month=completion.month,
            period_key=completion.period_key,
        )
        try:
            with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError as exc:
            logger.info(
                "Duplicate completion for task %s period %s",
                completion.task_id,
                completion.period_key,
            )
            raise DuplicateCompletionError(completion.task_id, completion.period_key) from exc
        return self._completion_from_row(row)

    def delete_completion(self, completion_id: UUID) -> None:
        self.db.query(RoutineCompletionRow).filter(RoutineCompletionRow.id == completion_id).delete(
            synchronize_session=False
        )
        self.db.flush()

    # -- task writes -------------------------------------------------------

    def insert_task(self, user_id: UUID, task: RoutineTask) -> RoutineTask:
        row = _row_from_task(user_id, task)
        self.db.add(row)
        self.db.flush()
        return _task_from_row(row)

    def delete_task(self, task_id: UUID) -> None:
        purged = self._purge_completions(task_id)
        self.db.query(RoutineTaskRow).filter(RoutineTaskRow.id == task_id).delete(synchronize_session=False)
        self.db.flush()
        logger.debug("Deleted routine task %s (%s completions)", task_id, purged)

    def set_task_active(self, task_id: UUID, active: bool) -> int:
        row = self.db.get(RoutineTaskRow, task_id)
        if row is None:
            raise LookupError(f"Routine task {task_id} not found")
        row.is_active = active
        purged = 0 if active else self._purge_completions(task_id)
        self.db.add(row)
        self.db.flush()
        return purged

    def update_task_order(self, user_id: UUID, ordered_ids: Sequence[UUID]) -> None:
        rows = {
            row.id: row
            for row in self.db.query(RoutineTaskRow).filter(RoutineTaskRow.user_id == user_id).all()
        }
        for position, task_id in enumerate(ordered_ids):
            row = rows.get(task_id)
            if row is None:
                continue
            row.sort_order = position
            self.db.add(row)
        self.db.flush()

    def replace_generated_tasks(self, user_id: UUID, tasks: Iterable[RoutineTask]) -> List[RoutineTask]:
        generated_ids = [
            row.id
            for row in self.db.query(RoutineTaskRow.id)
            .filter(RoutineTaskRow.user_id == user_id, RoutineTaskRow.is_auto_generated.is_(True))
            .all()
        ]
        if generated_ids:
            self.db.query(RoutineCompletionRow).filter(
                RoutineCompletionRow.routine_task_id.in_(generated_ids)
            ).delete(synchronize_session=False)
            self.db.query(RoutineTaskRow).filter(RoutineTaskRow.id.in_(generated_ids)).delete(
                synchronize_session=False
            )

        rows = [_row_from_task(user_id, task) for task in tasks]
        self.db.add_all(rows)
        self.db.flush()
        logger.info(
            "Replaced %s generated routine tasks with %s for user %s",
            len(generated_ids),
            len(rows),
            user_id,
        )
        return [_task_from_row(row) for row in rows]

    # -- plan writes -------------------------------------------------------

    def save_plan(self, user_id: UUID, plan: CommunicationPlan) -> CommunicationPlan:
        row = self.db.query(CommunicationPlanRow).filter(CommunicationPlanRow.user_id == user_id).one_or_none()
        if row is None:
            row = CommunicationPlanRow(user_id=user_id)
        row.daily_time_minutes = plan.daily_time_minutes
        row.active_days = [day.value for day in parse_weekdays(plan.active_days)]
        row.monthly_goal = plan.monthly_goal
        row.channels = list(plan.channels)
        row.instagram_posts_week = plan.instagram_posts_week
        row.instagram_stories_week = plan.instagram_stories_week
        row.instagram_reels_month = plan.instagram_reels_month
        row.linkedin_posts_week = plan.linkedin_posts_week
        row.newsletter_frequency = plan.newsletter_frequency
        self.db.add(row)
        self.db.flush()
        return _plan_from_row(row)

    # -- helpers -----------------------------------------------------------

    def _purge_completions(self, task_id: UUID) -> int:
        return (
            self.db.query(RoutineCompletionRow)
            .filter(RoutineCompletionRow.routine_task_id == task_id)
            .delete(synchronize_session=False)
        )

    def _local(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value
        return value.astimezone(self.zone)

    def _completion_from_row(self, row: RoutineCompletionRow) -> Completion:
        return Completion(
            id=row.id,
            task_id=row.routine_task_id,
            completed_at=self._local(row.completed_at),
            week=row.week,
            month=row.month,
            period_key=row.period_key,
        )


def _task_from_row(row: RoutineTaskRow) -> RoutineTask:
    return RoutineTask(
        id=row.id,
        title=row.title,
        task_type=row.task_type or "custom",
        channel=row.channel,
        duration_minutes=row.duration_minutes or 0,
        recurrence=row.recurrence,
        day_of_week=parse_weekday(row.day_of_week) or row.day_of_week,
        week_of_month=row.week_of_month,
        linked_module=row.linked_module,
        is_auto_generated=bool(row.is_auto_generated),
        sort_order=row.sort_order or 0,
        is_active=bool(row.is_active),
    )


def _row_from_task(user_id: UUID, task: RoutineTask) -> RoutineTaskRow:
    day = parse_weekday(task.day_of_week)
    return RoutineTaskRow(
        id=task.id,
        user_id=user_id,
        title=task.title,
        task_type=task.task_type,
        channel=task.channel,
        duration_minutes=task.duration_minutes,
        recurrence=str(getattr(task.recurrence, "value", task.recurrence)),
        day_of_week=day.value if day else None,
        week_of_month=task.week_of_month,
        linked_module=task.linked_module,
        is_auto_generated=task.is_auto_generated,
        sort_order=task.sort_order,
        is_active=task.is_active,
    )


def _plan_from_row(row: CommunicationPlanRow) -> CommunicationPlan:
    return CommunicationPlan(
        active_days=frozenset(parse_weekdays(row.active_days)),
        daily_time_minutes=row.daily_time_minutes if row.daily_time_minutes is not None else 30,
        monthly_goal=row.monthly_goal or "visibility",
        channels=tuple(row.channels or ()),
        instagram_posts_week=row.instagram_posts_week or 0,
        instagram_stories_week=row.instagram_stories_week or 0,
        instagram_reels_month=row.instagram_reels_month or 0,
        linkedin_posts_week=row.linkedin_posts_week or 0,
        newsletter_frequency=row.newsletter_frequency or "none",
    )
