"""Database utilities and models."""

from routine_engine.db.base import Base
from routine_engine.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
