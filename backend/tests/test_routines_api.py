from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from routine_engine.core.clock import get_now
from routine_engine.core.config import settings
from routine_engine.db.deps import get_db
from routine_engine.db.models.activity_log import ActivityLog
from routine_engine.db.models.communication_plan import CommunicationPlan
from routine_engine.db.models.routine_completion import RoutineCompletion
from routine_engine.db.models.routine_task import RoutineTask
from routine_engine.db.models.user import User
from routine_engine.main import app
from routine_engine.services.routine_store import SqlRoutineStore

# Wednesday of the first week of June 2024.
NOW = datetime(2024, 6, 5, 14, 30, tzinfo=ZoneInfo("Europe/Paris"))


@pytest.fixture()
def clock():
    return {"now": NOW}


@pytest.fixture()
def client(clock):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    CommunicationPlan.__table__.create(bind=engine)
    RoutineTask.__table__.create(bind=engine)
    RoutineCompletion.__table__.create(bind=engine)
    ActivityLog.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock["now"]
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _save_plan(client: TestClient, user_id: UUID, **overrides) -> dict:
    payload = {
        "user_id": str(user_id),
        "daily_time_minutes": 30,
        "active_days": ["mon", "tue", "wed", "thu", "fri"],
        "channels": ["instagram"],
        "instagram_posts_week": 0,
        "instagram_stories_week": 0,
        "instagram_reels_month": 0,
        **overrides,
    }
    response = client.put("/communication-plan", json=payload)
    assert response.status_code == 200
    return response.json()


def _today(client: TestClient, user_id: UUID) -> dict:
    response = client.get("/routines/today", params={"user_id": str(user_id)})
    assert response.status_code == 200
    return response.json()


def _toggle(client: TestClient, user_id: UUID, task_id: str):
    return client.post(f"/routines/tasks/{task_id}/toggle", json={"user_id": str(user_id)})


def test_today_without_plan_is_empty(client):
    test_client, _ = client
    body = _today(test_client, uuid4())

    assert body["has_plan"] is False
    assert body["tasks"] == []
    assert body["total_count"] == 0
    assert body["completion_percent"] == 0
    assert body["streak"] == 0


def test_today_lists_due_daily_tasks(client):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id)

    body = _today(test_client, user_id)

    assert body["today"] == "2024-06-05"
    assert body["day"] == "wed"
    assert body["day_label"] == "Mercredi"
    assert body["is_active_day"] is True
    assert body["total_count"] == 3
    assert body["completed_count"] == 0
    assert [task["recurrence"] for task in body["tasks"]] == ["daily", "daily", "daily"]
    assert [group["category"] for group in body["categories"]] == ["engagement", "prospection", "admin"]
    assert body["total_minutes"] == sum(task["duration_minutes"] for task in body["tasks"])


def test_off_day_has_nothing_due(client, clock):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id, active_days=["lun", "mer", "ven"])
    clock["now"] = NOW - timedelta(days=1)

    body = _today(test_client, user_id)

    assert body["is_active_day"] is False
    assert body["tasks"] == []


def test_toggle_flow_celebrates_when_day_is_done(client):
    test_client, session_factory = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_ids = [task["id"] for task in _today(test_client, user_id)["tasks"]]

    first = _toggle(test_client, user_id, task_ids[0]).json()
    second = _toggle(test_client, user_id, task_ids[1]).json()
    last = _toggle(test_client, user_id, task_ids[2])

    assert first["completed"] is True
    assert first["period_key"] == "2024-06-05"
    assert first["celebration"] is None
    assert second["completed_count"] == 2
    assert last.status_code == 200
    body = last.json()
    assert body["completed_count"] == 3
    assert body["total_count"] == 3
    assert body["streak"] == 1
    assert body["celebration"] == {"streak": 1, "completed_count": 3, "total_count": 3}

    today = _today(test_client, user_id)
    assert today["completion_percent"] == 100
    assert all(task["completed"] for task in today["tasks"])

    undo = _toggle(test_client, user_id, task_ids[2]).json()
    assert undo["completed"] is False
    assert undo["completion_id"] is None
    assert undo["celebration"] is None

    with session_factory() as db:
        actions = [log.action_type for log in db.query(ActivityLog).filter(ActivityLog.user_id == user_id)]
        assert actions.count("routine_day_completed") == 1
        assert actions.count("routine_task_completed") == 3
        assert actions.count("routine_task_uncompleted") == 1
        assert db.query(RoutineCompletion).count() == 2


def test_celebration_disabled(client, monkeypatch):
    test_client, session_factory = client
    monkeypatch.setattr(settings, "celebrations_enabled", False)
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_ids = [task["id"] for task in _today(test_client, user_id)["tasks"]]

    bodies = [_toggle(test_client, user_id, task_id).json() for task_id in task_ids]

    assert [body["celebration"] for body in bodies] == [None, None, None]
    with session_factory() as db:
        assert db.query(ActivityLog).filter(ActivityLog.action_type == "routine_day_completed").count() == 0


def test_streak_spans_days(client, clock):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_id = _today(test_client, user_id)["tasks"][0]["id"]

    clock["now"] = NOW - timedelta(days=2)
    _toggle(test_client, user_id, task_id)
    clock["now"] = NOW - timedelta(days=1)
    _toggle(test_client, user_id, task_id)
    clock["now"] = NOW

    response = test_client.get("/routines/streak", params={"user_id": str(user_id)})

    assert response.status_code == 200
    assert response.json()["streak"] == 2
    assert _today(test_client, user_id)["streak"] == 2


def test_toggle_foreign_task_forbidden(client):
    test_client, _ = client
    owner = uuid4()
    _save_plan(test_client, owner)
    task_id = _today(test_client, owner)["tasks"][0]["id"]

    response = _toggle(test_client, uuid4(), task_id)

    assert response.status_code == 403


def test_toggle_unknown_task_not_found(client):
    test_client, _ = client

    response = _toggle(test_client, uuid4(), str(uuid4()))

    assert response.status_code == 404


def test_toggle_store_failure_returns_503(client, monkeypatch):
    test_client, session_factory = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_id = _today(test_client, user_id)["tasks"][0]["id"]

    def _fail(self, completion):
        raise ConnectionError("database unavailable")

    monkeypatch.setattr(SqlRoutineStore, "insert_completion", _fail)

    response = _toggle(test_client, user_id, task_id)

    assert response.status_code == 503
    with session_factory() as db:
        assert db.query(RoutineCompletion).count() == 0
        assert db.query(ActivityLog).filter(ActivityLog.action_type == "routine_task_completed").count() == 0


def test_week_view_groups_active_days(client):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id, active_days=["mon", "wed", "fri"], instagram_posts_week=2)

    response = test_client.get("/routines/week", params={"user_id": str(user_id)})

    assert response.status_code == 200
    body = response.json()
    assert body["week_id"] == "2024-W23"
    assert body["week_start"] == "2024-06-03"
    assert [day["day"] for day in body["days"]] == ["mon", "wed", "fri"]
    assert [day["is_today"] for day in body["days"]] == [False, True, False]
    posts = {
        day["day"]: [task for task in day["tasks"] if task["task_type"] == "content_post"]
        for day in body["days"]
    }
    assert len(posts["mon"]) == 1
    assert len(posts["wed"]) == 1
    assert posts["fri"] == []
    assert body["total_minutes"] == sum(day["minutes"] for day in body["days"])


def test_month_view_lists_monthly_tasks(client):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id)

    response = test_client.get("/routines/month", params={"user_id": str(user_id)})

    assert response.status_code == 200
    body = response.json()
    assert body["month_id"] == "2024-06"
    assert body["week_of_month"] == 1
    assert body["total_count"] == 2
    assert all(task["recurrence"] == "monthly" for task in body["tasks"])


def test_custom_task_lifecycle(client):
    test_client, session_factory = client
    user_id = uuid4()
    _save_plan(test_client, user_id)

    created = test_client.post(
        "/routines/tasks",
        json={"user_id": str(user_id), "title": "  Plan podcast  ", "recurrence": "weekly", "day_of_week": "mer"},
    )
    assert created.status_code == 201
    task = created.json()["task"]
    assert task["title"] == "Plan podcast"
    assert task["day_of_week"] == "wed"
    assert task["task_type"] == "custom"
    assert task["category"] == "other"
    assert task["is_auto_generated"] is False
    assert task["sort_order"] == 5

    today_ids = [item["id"] for item in _today(test_client, user_id)["tasks"]]
    assert task["id"] in today_ids

    toggled = _toggle(test_client, user_id, task["id"]).json()
    assert toggled["period_key"] == "2024-W23"

    deleted = test_client.delete(f"/routines/tasks/{task['id']}", params={"user_id": str(user_id)})
    assert deleted.status_code == 204
    with session_factory() as db:
        assert db.get(RoutineTask, UUID(task["id"])) is None
        assert db.query(RoutineCompletion).count() == 0


def test_custom_task_validation(client):
    test_client, _ = client
    user_id = uuid4()

    missing_day = test_client.post(
        "/routines/tasks",
        json={"user_id": str(user_id), "title": "Weekly thing", "recurrence": "weekly"},
    )
    missing_week = test_client.post(
        "/routines/tasks",
        json={"user_id": str(user_id), "title": "Monthly thing", "recurrence": "monthly"},
    )
    blank = test_client.post("/routines/tasks", json={"user_id": str(user_id), "title": "   "})

    assert missing_day.status_code == 422
    assert missing_week.status_code == 422
    assert blank.status_code == 422


def test_generated_task_cannot_be_deleted(client):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_id = _today(test_client, user_id)["tasks"][0]["id"]

    response = test_client.delete(f"/routines/tasks/{task_id}", params={"user_id": str(user_id)})

    assert response.status_code == 409


def test_deactivate_task_purges_completions(client):
    test_client, session_factory = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_id = _today(test_client, user_id)["tasks"][0]["id"]
    _toggle(test_client, user_id, task_id)

    response = test_client.patch(
        f"/routines/tasks/{task_id}",
        json={"user_id": str(user_id), "is_active": False},
    )

    assert response.status_code == 200
    assert response.json()["completions_removed"] == 1
    assert task_id not in [task["id"] for task in _today(test_client, user_id)["tasks"]]
    assert _toggle(test_client, user_id, task_id).status_code == 404
    with session_factory() as db:
        assert db.query(RoutineCompletion).count() == 0


def test_reorder_tasks(client):
    test_client, _ = client
    user_id = uuid4()
    _save_plan(test_client, user_id)
    task_ids = [task["id"] for task in _today(test_client, user_id)["tasks"]]

    response = test_client.put(
        "/routines/tasks/order",
        json={"user_id": str(user_id), "task_ids": list(reversed(task_ids))},
    )

    assert response.status_code == 200
    assert [task["id"] for task in _today(test_client, user_id)["tasks"]] == list(reversed(task_ids))


def test_reorder_rejects_foreign_task(client):
    test_client, _ = client
    owner = uuid4()
    _save_plan(test_client, owner)
    task_id = _today(test_client, owner)["tasks"][0]["id"]

    response = test_client.put(
        "/routines/tasks/order",
        json={"user_id": str(uuid4()), "task_ids": [task_id]},
    )

    assert response.status_code == 403
