"""Schemas for the communication plan endpoints."""
from __future__ import annotations

from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from routine_engine.services.periods import Weekday, parse_weekday

Channel = Literal["instagram", "linkedin", "newsletter", "blog", "pinterest"]


class CommunicationPlanRequest(BaseModel):
    user_id: UUID
    daily_time_minutes: int = Field(default=30, ge=0, le=600)
    active_days: List[Weekday] = Field(default_factory=list)
    monthly_goal: str = Field(default="visibility", min_length=1, max_length=50)
    channels: List[Channel] = Field(default_factory=list)
    instagram_posts_week: int = Field(default=0, ge=0, le=14)
    instagram_stories_week: int = Field(default=0, ge=0, le=14)
    instagram_reels_month: int = Field(default=0, ge=0, le=31)
    linkedin_posts_week: int = Field(default=0, ge=0, le=14)
    newsletter_frequency: Literal["none", "weekly", "bimonthly", "monthly"] = "none"

    @field_validator("active_days", mode="before")
    @classmethod
    def parse_days(cls, value):
        if value is None:
            return []
        parsed = []
        for item in value:
            day = parse_weekday(item)
            if day is None:
                raise ValueError(f"unknown weekday {item!r}")
            if day not in parsed:
                parsed.append(day)
        return parsed


class CommunicationPlanResponse(BaseModel):
    user_id: UUID
    daily_time_minutes: int
    active_days: List[Weekday]
    monthly_goal: str
    channels: List[str]
    instagram_posts_week: int
    instagram_stories_week: int
    instagram_reels_month: int
    linkedin_posts_week: int
    newsletter_frequency: str
    generated_tasks: int
    request_id: str
