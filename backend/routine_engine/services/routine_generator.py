"""Build the auto-generated routine from a communication plan."""
from __future__ import annotations

import math
from typing import Iterable, List, Optional

from routine_engine.services.periods import Weekday, parse_weekdays
from routine_engine.services.routine_models import CommunicationPlan, Recurrence, RoutineTask

NEWSLETTER_FREQUENCIES = ("none", "weekly", "bimonthly", "monthly")
MAX_STORY_DAYS = 3

CATEGORY_ORDER = ("creation", "engagement", "prospection", "admin", "other")


def distribute_days(active_days: Iterable[object], count: int) -> List[Weekday]:
    """Spread ``count`` weekly slots over the active days as evenly as possible.

    Never returns more slots than there are active days, and never the same
    day twice.
    """
    ordered = parse_weekdays(active_days)
    if count <= 0 or not ordered:
        return []
    slots = min(count, len(ordered))
    step = len(ordered) / slots
    return [ordered[math.floor(index * step)] for index in range(slots)]


def task_category(task_type: str) -> str:
    """Display category of a task type."""
    if task_type.startswith("content"):
        return "creation"
    if task_type in ("engagement", "prospection", "admin"):
        return task_type
    return "other"


class _RoutineBuilder:
    def __init__(self) -> None:
        self.tasks: List[RoutineTask] = []

    def add(
        self,
        title: str,
        task_type: str,
        *,
        recurrence: Recurrence,
        duration_minutes: int,
        channel: Optional[str] = None,
        day_of_week: Optional[Weekday] = None,
        week_of_month: Optional[int] = None,
        linked_module: Optional[str] = None,
    ) -> None:
        self.tasks.append(
            RoutineTask(
                title=title,
                task_type=task_type,
                channel=channel,
                duration_minutes=duration_minutes,
                recurrence=recurrence.value,
                day_of_week=day_of_week,
                week_of_month=week_of_month,
                linked_module=linked_module,
                is_auto_generated=True,
                sort_order=len(self.tasks),
            )
        )


def _reel_weeks(reels_per_month: int) -> List[int]:
    if reels_per_month >= 4:
        return [1, 2, 3, 4]
    if reels_per_month >= 2:
        return [1, 3]
    return [2]


def generate_routine_tasks(plan: CommunicationPlan) -> List[RoutineTask]:
    """Return the ordered auto-generated tasks for ``plan``.

    Weekly tasks only land on the plan's active days. Monthly admin tasks and
    the daily inbox task are always present.
    """
    active_days = parse_weekdays(plan.active_days)
    first_day = active_days[0] if active_days else Weekday.MON
    last_day = active_days[-1] if active_days else Weekday.FRI
    channels = set(plan.channels)
    builder = _RoutineBuilder()

    if "instagram" in channels:
        for day in distribute_days(active_days, plan.instagram_posts_week):
            builder.add(
                "Write 1 Instagram post",
                "content_post",
                channel="instagram",
                recurrence=Recurrence.WEEKLY,
                duration_minutes=15,
                day_of_week=day,
                linked_module="/atelier?canal=instagram",
            )
        if plan.instagram_stories_week > 0:
            for day in distribute_days(active_days, min(plan.instagram_stories_week, MAX_STORY_DAYS)):
                builder.add(
                    "Create stories",
                    "content_stories",
                    channel="instagram",
                    recurrence=Recurrence.WEEKLY,
                    duration_minutes=10,
                    day_of_week=day,
                    linked_module="/instagram/stories",
                )
        if plan.instagram_reels_month > 0:
            for week in _reel_weeks(plan.instagram_reels_month):
                builder.add(
                    "Shoot / edit 1 Reel",
                    "content_reel",
                    channel="instagram",
                    recurrence=Recurrence.MONTHLY,
                    duration_minutes=30,
                    day_of_week=first_day,
                    week_of_month=week,
                    linked_module="/instagram/reels",
                )
        builder.add(
            "Engagement: comment on 3 strategic accounts",
            "engagement",
            channel="instagram",
            recurrence=Recurrence.DAILY,
            duration_minutes=max(5, round(plan.daily_time_minutes * 0.3)),
            linked_module="/instagram/routine",
        )
        builder.add(
            "Send 1 prospecting DM",
            "prospection",
            channel="instagram",
            recurrence=Recurrence.DAILY,
            duration_minutes=max(5, round(plan.daily_time_minutes * 0.15)),
            linked_module="/instagram/routine",
        )

    if "linkedin" in channels:
        for day in distribute_days(active_days, plan.linkedin_posts_week):
            builder.add(
                "Write 1 LinkedIn post",
                "content_linkedin",
                channel="linkedin",
                recurrence=Recurrence.WEEKLY,
                duration_minutes=15,
                day_of_week=day,
                linked_module="/linkedin",
            )

    if "newsletter" in channels and plan.newsletter_frequency != "none":
        if plan.newsletter_frequency == "weekly":
            builder.add(
                "Write the newsletter",
                "content_newsletter",
                channel="newsletter",
                recurrence=Recurrence.WEEKLY,
                duration_minutes=30,
                day_of_week=last_day,
            )
        else:
            weeks = [1, 3] if plan.newsletter_frequency == "bimonthly" else [2]
            for week in weeks:
                builder.add(
                    "Write the newsletter",
                    "content_newsletter",
                    channel="newsletter",
                    recurrence=Recurrence.MONTHLY,
                    duration_minutes=30,
                    day_of_week=last_day,
                    week_of_month=week,
                )

    builder.add(
        "Build next month's editorial calendar",
        "admin",
        recurrence=Recurrence.MONTHLY,
        duration_minutes=45,
        week_of_month=4,
        linked_module="/calendrier",
    )
    builder.add(
        "Review this month's stats",
        "admin",
        recurrence=Recurrence.MONTHLY,
        duration_minutes=15,
        week_of_month=4,
        linked_module="/instagram/stats",
    )
    builder.add(
        "Reply to comments and DMs",
        "admin",
        recurrence=Recurrence.DAILY,
        duration_minutes=5,
    )
    return builder.tasks
