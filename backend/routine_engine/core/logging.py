"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from routine_engine.core.context import get_request_id


class RequestIdFilter(logging.Filter):
    """Add request_id attribute to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO", sql_echo: bool = False) -> None:
    """Configure application logging once at startup.

    SQL statements are only logged when ``sql_echo`` is set, otherwise the
    SQLAlchemy engine logger is held at WARNING regardless of ``log_level``.
    """
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
                }
            },
            "filters": {
                "request_id": {
                    "()": "routine_engine.core.logging.RequestIdFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["request_id"],
                }
            },
            "loggers": {
                "sqlalchemy.engine": {
                    "level": "INFO" if sql_echo else "WARNING",
                },
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s (sql_echo=%s)", log_level, sql_echo)
    setattr(configure_logging, "_configured", True)
