"""Schemas for routine task, schedule and completion endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from routine_engine.services.periods import Weekday, parse_weekday


class RoutineTaskSummary(BaseModel):
    id: UUID
    title: str
    task_type: str
    category: str
    channel: Optional[str]
    duration_minutes: int
    recurrence: str
    day_of_week: Optional[str]
    week_of_month: Optional[int]
    linked_module: Optional[str]
    is_auto_generated: bool
    sort_order: int
    completed: bool


class CategoryGroup(BaseModel):
    category: str
    minutes: int
    tasks: List[RoutineTaskSummary]


class TodayRoutineResponse(BaseModel):
    user_id: UUID
    today: date
    day: Weekday
    day_label: str
    has_plan: bool
    is_active_day: bool
    monthly_goal: Optional[str]
    tasks: List[RoutineTaskSummary]
    categories: List[CategoryGroup]
    completed_count: int
    total_count: int
    completion_percent: int
    total_minutes: int
    streak: int
    request_id: str


class WeekDayEntry(BaseModel):
    day: Weekday
    label: str
    calendar_date: date
    is_today: bool
    tasks: List[RoutineTaskSummary]
    completed_count: int
    total_count: int
    minutes: int


class WeekRoutineResponse(BaseModel):
    user_id: UUID
    week_id: str
    week_start: date
    days: List[WeekDayEntry]
    total_minutes: int
    request_id: str


class MonthRoutineResponse(BaseModel):
    user_id: UUID
    month_id: str
    week_of_month: int
    tasks: List[RoutineTaskSummary]
    completed_count: int
    total_count: int
    request_id: str


class StreakResponse(BaseModel):
    user_id: UUID
    today: date
    streak: int
    request_id: str


class RoutineTaskCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    duration_minutes: int = Field(default=15, ge=0, le=480)
    recurrence: Literal["daily", "weekly", "monthly"] = "daily"
    day_of_week: Optional[Weekday] = None
    week_of_month: Optional[int] = Field(default=None, ge=1, le=5)

    @field_validator("title")
    @classmethod
    def trim_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned

    @field_validator("day_of_week", mode="before")
    @classmethod
    def accept_legacy_tags(cls, value):
        if value is None or value == "":
            return None
        parsed = parse_weekday(value)
        if parsed is None:
            raise ValueError(f"unknown weekday {value!r}")
        return parsed

    @model_validator(mode="after")
    def check_recurrence_fields(self) -> "RoutineTaskCreateRequest":
        if self.recurrence == "weekly" and self.day_of_week is None:
            raise ValueError("weekly tasks need a day_of_week")
        if self.recurrence == "monthly" and self.week_of_month is None:
            raise ValueError("monthly tasks need a week_of_month")
        return self


class RoutineTaskCreateResponse(BaseModel):
    task: RoutineTaskSummary
    request_id: str


class RoutineTaskUpdateRequest(BaseModel):
    user_id: UUID
    is_active: bool


class RoutineTaskUpdateResponse(BaseModel):
    id: UUID
    is_active: bool
    completions_removed: int
    request_id: str


class RoutineTaskOrderRequest(BaseModel):
    user_id: UUID
    task_ids: List[UUID] = Field(..., min_length=1)


class RoutineTaskOrderResponse(BaseModel):
    user_id: UUID
    task_ids: List[UUID]
    request_id: str


class RoutineToggleRequest(BaseModel):
    user_id: UUID


class CelebrationPayload(BaseModel):
    streak: int
    completed_count: int
    total_count: int


class RoutineToggleResponse(BaseModel):
    task_id: UUID
    completed: bool
    completion_id: Optional[UUID]
    completed_at: Optional[datetime]
    period_key: str
    streak: int
    completed_count: int
    total_count: int
    celebration: Optional[CelebrationPayload]
    request_id: str
