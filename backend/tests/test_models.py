from routine_engine.db.base import Base
from routine_engine.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    expected = {
        "users",
        "communication_plans",
        "routine_tasks",
        "routine_completions",
        "activity_log",
    }

    assert expected.issubset(table_names)


def test_completions_unique_per_task_period() -> None:
    table = Base.metadata.tables["routine_completions"]
    unique_columns = {
        tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if constraint.__class__.__name__ == "UniqueConstraint"
    }

    assert ("routine_task_id", "period_key") in unique_columns
