"""Tests for calendar period helpers."""
from __future__ import annotations

from datetime import date, datetime

import pytest

from routine_engine.services.periods import (
    Weekday,
    day_id,
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


@pytest.mark.parametrize(
    "value, expected",
    [
        (date(2024, 1, 1), "2024-W01"),
        (date(2024, 1, 7), "2024-W01"),
        (date(2024, 1, 8), "2024-W02"),
        (date(2023, 1, 1), "2023-W01"),
        (date(2023, 1, 2), "2023-W02"),
        (date(2024, 12, 31), "2024-W53"),
        (date(2025, 1, 1), "2025-W01"),
    ],
)
def test_week_id_counts_monday_weeks_from_january_first(value: date, expected: str) -> None:
    assert week_id(value) == expected


def test_sunday_closes_the_monday_week() -> None:
    assert week_id(date(2024, 6, 9)) == week_id(date(2024, 6, 3)) == "2024-W23"
    assert week_id(date(2024, 6, 10)) == "2024-W24"


@pytest.mark.parametrize("day, expected", [(1, 1), (7, 1), (8, 2), (14, 2), (15, 3), (28, 4), (29, 5), (31, 5)])
def test_week_of_month_uses_seven_day_blocks(day: int, expected: int) -> None:
    assert week_of_month(date(2024, 3, day)) == expected


def test_identifiers_ignore_time_of_day() -> None:
    early = datetime(2024, 3, 31, 0, 0, 1)
    late = datetime(2024, 3, 31, 23, 59, 59)

    assert week_of_month(early) == week_of_month(late) == 5
    assert week_id(early) == week_id(late)
    assert month_id(early) == month_id(late) == "2024-03"
    assert day_id(early) == day_id(late) == "2024-03-31"


def test_day_key_maps_calendar_weekday() -> None:
    assert day_key(date(2024, 6, 3)) is Weekday.MON
    assert day_key(datetime(2024, 6, 9, 18, 30)) is Weekday.SUN


def test_parse_weekday_accepts_legacy_tags() -> None:
    assert parse_weekday("lun") is Weekday.MON
    assert parse_weekday(" Ven ") is Weekday.FRI
    assert parse_weekday("sun") is Weekday.SUN
    assert parse_weekday(Weekday.WED) is Weekday.WED
    assert parse_weekday("xyz") is None
    assert parse_weekday(None) is None
    assert parse_weekday(3) is None


def test_parse_weekdays_orders_and_dedupes() -> None:
    assert parse_weekdays(["ven", "mon", "lun", "bogus", "wed"]) == [Weekday.MON, Weekday.WED, Weekday.FRI]
    assert parse_weekdays(None) == []


def test_day_label_falls_back_to_french() -> None:
    assert day_label(Weekday.MON) == "Lundi"
    assert day_label(Weekday.MON, "en") == "Monday"
    assert day_label(Weekday.SUN, "de") == "Dimanche"


def test_week_dates_start_on_monday() -> None:
    dates = week_dates(date(2024, 6, 5))

    assert week_start(date(2024, 6, 9)) == date(2024, 6, 3)
    assert dates[Weekday.MON] == date(2024, 6, 3)
    assert dates[Weekday.SUN] == date(2024, 6, 9)
    assert len(dates) == 7
