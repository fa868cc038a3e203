"""Database column type helpers."""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TypeDecorator


class JSONBCompat(TypeDecorator):
    """JSONB that falls back to native JSON on dialects like SQLite (for tests)."""

    impl = JSONB
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":  # pragma: no cover - dialect specific
            return dialect.type_descriptor(JSON())
        return dialect.type_descriptor(JSONB())


class StringList(JSONBCompat):
    """JSON array of strings; ``None`` is stored and read back as an empty list."""

    cache_ok = True

    def process_bind_param(self, value, dialect):
        return [str(item) for item in (value or [])]

    def process_result_value(self, value, dialect):
        return list(value or [])
