"""Injectable clock for request handlers."""
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from routine_engine.core.config import settings


def get_zone() -> ZoneInfo:
    """Return the configured scheduling zone."""
    return ZoneInfo(settings.timezone)


def get_now() -> datetime:
    """FastAPI dependency returning the current time in the scheduling zone.

    Routes never call a live clock themselves so tests can pin "now" through
    ``app.dependency_overrides[get_now]``.
    """
    return datetime.now(get_zone())
