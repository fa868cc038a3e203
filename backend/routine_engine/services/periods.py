"""Calendar period helpers: weekday tags, week/month identifiers, week-of-month.

Every function accepts a ``date`` or a ``datetime`` and only looks at the
calendar date, so two timestamps on the same day always land in the same
day, week and month bucket.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

DateLike = Union[date, datetime]


class Weekday(str, Enum):
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"


# Indexed by date.weekday() (Monday == 0).
WEEKDAYS: tuple[Weekday, ...] = tuple(Weekday)

# Tags written by the first web client, still present in older rows.
_LEGACY_TAGS: Dict[str, Weekday] = {
    "lun": Weekday.MON,
    "mar": Weekday.TUE,
    "mer": Weekday.WED,
    "jeu": Weekday.THU,
    "ven": Weekday.FRI,
    "sam": Weekday.SAT,
    "dim": Weekday.SUN,
}

_DAY_LABELS: Dict[str, Dict[Weekday, str]] = {
    "fr": {
        Weekday.MON: "Lundi",
        Weekday.TUE: "Mardi",
        Weekday.WED: "Mercredi",
        Weekday.THU: "Jeudi",
        Weekday.FRI: "Vendredi",
        Weekday.SAT: "Samedi",
        Weekday.SUN: "Dimanche",
    },
    "en": {
        Weekday.MON: "Monday",
        Weekday.TUE: "Tuesday",
        Weekday.WED: "Wednesday",
        Weekday.THU: "Thursday",
        Weekday.FRI: "Friday",
        Weekday.SAT: "Saturday",
        Weekday.SUN: "Sunday",
    },
}


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_weekday(value: object) -> Optional[Weekday]:
    """Return the Weekday for an enum member, English tag or legacy French tag.

    Unknown values yield ``None`` instead of raising so malformed rows can be
    skipped by the scheduler.
    """
    if isinstance(value, Weekday):
        return value
    if not isinstance(value, str):
        return None
    tag = value.strip().lower()
    try:
        return Weekday(tag)
    except ValueError:
        return _LEGACY_TAGS.get(tag)


def parse_weekdays(values: Optional[Iterable[object]]) -> List[Weekday]:
    """Parse a collection of tags, dropping unknown ones and duplicates, in calendar order."""
    parsed = {day for day in (parse_weekday(value) for value in (values or [])) if day is not None}
    return [day for day in WEEKDAYS if day in parsed]


def day_label(day: Weekday, locale: str = "fr") -> str:
    labels = _DAY_LABELS.get(locale) or _DAY_LABELS["fr"]
    return labels[day]


def day_key(value: DateLike) -> Weekday:
    """Weekday tag of a date."""
    return WEEKDAYS[as_date(value).weekday()]


def day_id(value: DateLike) -> str:
    """``YYYY-MM-DD`` identifier of the calendar day."""
    return as_date(value).isoformat()


def week_id(value: DateLike) -> str:
    """``YYYY-Www`` identifier of the Monday-start week inside the year.

    Week 1 is the week containing January 1st and the number is derived only
    from the day of the year and the weekday of January 1st. Unlike ISO-8601,
    a week straddling December and January is split into ``YYYY-W5x`` and
    ``(YYYY+1)-W01``. Stored completions are bucketed with this rule, so it
    must not change.
    """
    current = as_date(value)
    jan_first = date(current.year, 1, 1)
    day_of_year = (current - jan_first).days
    week_number = (day_of_year + jan_first.weekday()) // 7 + 1
    return f"{current.year}-W{week_number:02d}"


def month_id(value: DateLike) -> str:
    """``YYYY-MM`` identifier of the calendar month."""
    current = as_date(value)
    return f"{current.year}-{current.month:02d}"


def week_of_month(value: DateLike) -> int:
    """Ordinal 7-day block of the month: days 1-7 are 1, 8-14 are 2, ... 29-31 are 5."""
    return (as_date(value).day + 6) // 7


def week_start(value: DateLike) -> date:
    """Monday of the week containing ``value``."""
    current = as_date(value)
    return current - timedelta(days=current.weekday())


def week_dates(value: DateLike) -> Dict[Weekday, date]:
    """Map each weekday to its date in the Monday-start week containing ``value``."""
    monday = week_start(value)
    return {day: monday + timedelta(days=offset) for offset, day in enumerate(WEEKDAYS)}
