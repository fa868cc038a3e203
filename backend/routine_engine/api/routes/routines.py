"""Routine schedule, custom task and completion API routes."""
from __future__ import annotations

from datetime import datetime
from time import perf_counter
from typing import Any, Dict, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from routine_engine.api.schemas.routines import (
    CelebrationPayload,
    MonthRoutineResponse,
    RoutineTaskCreateRequest,
    RoutineTaskCreateResponse,
    RoutineTaskOrderRequest,
    RoutineTaskOrderResponse,
    RoutineTaskUpdateRequest,
    RoutineTaskUpdateResponse,
    RoutineToggleRequest,
    RoutineToggleResponse,
    StreakResponse,
    TodayRoutineResponse,
    WeekRoutineResponse,
)
from routine_engine.core.clock import get_now, get_zone
from routine_engine.core.config import settings
from routine_engine.db.deps import get_db
from routine_engine.observability.metrics import log_latency, log_metric
from routine_engine.observability.tracing import trace
from routine_engine.services.celebration import Celebration, record_celebration
from routine_engine.services.routine_service import (
    TaskNotEditableError,
    TaskNotFoundError,
    TaskOwnershipError,
    add_custom_task,
    build_month_view,
    build_today_view,
    build_week_view,
    delete_custom_task,
    load_routine_context,
    reorder_tasks,
    resolve_locale,
    set_task_active,
    summarize_task,
    toggle_task,
)
from routine_engine.services.routine_store import SqlRoutineStore
from routine_engine.services.streak import streak
from routine_engine.services.toggle_engine import ToggleError
from routine_engine.services.user_service import get_or_create_user

router = APIRouter()


@router.get("/routines/today", response_model=TodayRoutineResponse, tags=["routines"])
def get_today_routine(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> TodayRoutineResponse:
    """Tasks due today with completion flags, category groups and the current streak."""
    request_id = getattr(http_request.state, "request_id", None)
    started = perf_counter()

    with trace(
        "routines.today",
        metadata={"user_id": str(user_id), "day": now.date().isoformat(), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        context = load_routine_context(SqlRoutineStore(db, get_zone()), user_id)
        response = build_today_view(
            context,
            now,
            locale=resolve_locale(db, user_id),
            request_id=request_id or "",
        )

    log_metric("routines.today.success", 1, metadata={"user_id": str(user_id)})
    log_metric(
        "routines.today.completion_percent",
        response.completion_percent,
        metadata={"user_id": str(user_id)},
    )
    log_latency("routines.today", started, metadata={"user_id": str(user_id)})
    return response


@router.get("/routines/week", response_model=WeekRoutineResponse, tags=["routines"])
def get_week_routine(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> WeekRoutineResponse:
    request_id = getattr(http_request.state, "request_id", None)
    started = perf_counter()

    with trace(
        "routines.week",
        metadata={"user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        context = load_routine_context(SqlRoutineStore(db, get_zone()), user_id)
        response = build_week_view(
            context,
            now,
            locale=resolve_locale(db, user_id),
            request_id=request_id or "",
        )

    log_metric("routines.week.success", 1, metadata={"user_id": str(user_id), "week": response.week_id})
    log_latency("routines.week", started, metadata={"user_id": str(user_id)})
    return response


@router.get("/routines/month", response_model=MonthRoutineResponse, tags=["routines"])
def get_month_routine(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> MonthRoutineResponse:
    request_id = getattr(http_request.state, "request_id", None)

    with trace(
        "routines.month",
        metadata={"user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        context = load_routine_context(SqlRoutineStore(db, get_zone()), user_id)
        response = build_month_view(context, now, request_id=request_id or "")

    log_metric("routines.month.success", 1, metadata={"user_id": str(user_id), "month": response.month_id})
    return response


@router.get("/routines/streak", response_model=StreakResponse, tags=["routines"])
def get_streak(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> StreakResponse:
    request_id = getattr(http_request.state, "request_id", None)

    with trace(
        "routines.streak",
        metadata={"user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        completions = SqlRoutineStore(db, get_zone()).load_completions(user_id)
        value = streak(completions, now.date())

    log_metric("routines.streak.value", value, metadata={"user_id": str(user_id)})
    return StreakResponse(user_id=user_id, today=now.date(), streak=value, request_id=request_id or "")


@router.post(
    "/routines/tasks",
    response_model=RoutineTaskCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["routines"],
)
def create_custom_task(
    payload: RoutineTaskCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RoutineTaskCreateResponse:
    """Add a user-defined task to the end of the routine."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/routines/tasks",
        "user_id": str(payload.user_id),
        "recurrence": payload.recurrence,
        "request_id": request_id,
    }

    try:
        with trace(
            "routines.task.create",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            task = add_custom_task(db, SqlRoutineStore(db, get_zone()), payload, request_id=request_id)
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    log_metric("routines.task.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return RoutineTaskCreateResponse(task=summarize_task(task), request_id=request_id or "")


@router.delete("/routines/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["routines"])
def delete_task(
    task_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the task"),
    db: Session = Depends(get_db),
) -> Response:
    """Delete a custom task and its completions. Generated tasks are refused."""
    request_id = getattr(http_request.state, "request_id", None)

    try:
        with trace(
            "routines.task.delete",
            metadata={"task_id": str(task_id), "user_id": str(user_id), "request_id": request_id},
            user_id=str(user_id),
            request_id=request_id,
        ):
            try:
                delete_custom_task(
                    db,
                    SqlRoutineStore(db, get_zone()),
                    user_id=user_id,
                    task_id=task_id,
                    request_id=request_id,
                )
            except (TaskNotFoundError, TaskOwnershipError, TaskNotEditableError) as exc:
                _raise_http(exc)
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    log_metric("routines.task.delete.success", 1, metadata={"user_id": str(user_id), "task_id": str(task_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/routines/tasks/{task_id}", response_model=RoutineTaskUpdateResponse, tags=["routines"])
def update_task(
    task_id: UUID,
    payload: RoutineTaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RoutineTaskUpdateResponse:
    """Activate or deactivate a task. Deactivating removes its completions."""
    request_id = getattr(http_request.state, "request_id", None)

    try:
        with trace(
            "routines.task.update",
            metadata={
                "task_id": str(task_id),
                "user_id": str(payload.user_id),
                "is_active": payload.is_active,
                "request_id": request_id,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            try:
                removed = set_task_active(
                    db,
                    SqlRoutineStore(db, get_zone()),
                    user_id=payload.user_id,
                    task_id=task_id,
                    active=payload.is_active,
                    request_id=request_id,
                )
            except (TaskNotFoundError, TaskOwnershipError) as exc:
                _raise_http(exc)
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    log_metric(
        "routines.task.update.completions_removed",
        removed,
        metadata={"user_id": str(payload.user_id), "task_id": str(task_id)},
    )
    return RoutineTaskUpdateResponse(
        id=task_id,
        is_active=payload.is_active,
        completions_removed=removed,
        request_id=request_id or "",
    )


@router.put("/routines/tasks/order", response_model=RoutineTaskOrderResponse, tags=["routines"])
def update_task_order(
    payload: RoutineTaskOrderRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RoutineTaskOrderResponse:
    request_id = getattr(http_request.state, "request_id", None)

    try:
        with trace(
            "routines.task.reorder",
            metadata={"user_id": str(payload.user_id), "count": len(payload.task_ids), "request_id": request_id},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            try:
                reorder_tasks(
                    db,
                    SqlRoutineStore(db, get_zone()),
                    user_id=payload.user_id,
                    task_ids=payload.task_ids,
                )
            except (TaskNotFoundError, TaskOwnershipError) as exc:
                _raise_http(exc)
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    log_metric("routines.task.reorder.success", 1, metadata={"user_id": str(payload.user_id)})
    return RoutineTaskOrderResponse(
        user_id=payload.user_id,
        task_ids=list(dict.fromkeys(payload.task_ids)),
        request_id=request_id or "",
    )


@router.post("/routines/tasks/{task_id}/toggle", response_model=RoutineToggleResponse, tags=["routines"])
def toggle_task_completion(
    task_id: UUID,
    payload: RoutineToggleRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> RoutineToggleResponse:
    """Flip today's completion of a task and report the streak and any celebration."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/routines/tasks/{task_id}/toggle",
        "task_id": str(task_id),
        "user_id": str(payload.user_id),
        "day": now.date().isoformat(),
        "request_id": request_id,
    }

    def _celebrate(celebration: Celebration) -> None:
        record_celebration(db, user_id=payload.user_id, celebration=celebration, request_id=request_id)

    started = perf_counter()
    try:
        with trace(
            "routines.toggle",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            try:
                outcome = toggle_task(
                    db,
                    SqlRoutineStore(db, get_zone()),
                    user_id=payload.user_id,
                    task_id=task_id,
                    now=now,
                    request_id=request_id,
                    on_celebrate=_celebrate if settings.celebrations_enabled else None,
                )
            except (TaskNotFoundError, TaskOwnershipError) as exc:
                _raise_http(exc)
            except ToggleError as exc:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Completion could not be saved, please retry",
                ) from exc
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    result = outcome.result
    celebration = result.celebration if settings.celebrations_enabled else None
    log_metric(
        "routines.toggle.success",
        1,
        metadata={"user_id": str(payload.user_id), "task_id": str(task_id), "completed": result.completed},
    )
    log_latency("routines.toggle", started, metadata={"task_id": str(task_id)})

    return RoutineToggleResponse(
        task_id=task_id,
        completed=result.completed,
        completion_id=result.completion.id if result.completion else None,
        completed_at=result.completion.completed_at if result.completion else None,
        period_key=outcome.period_key,
        streak=result.streak,
        completed_count=outcome.completed_count,
        total_count=outcome.total_count,
        celebration=(
            CelebrationPayload(
                streak=celebration.streak,
                completed_count=celebration.completed_count,
                total_count=celebration.total_count,
            )
            if celebration
            else None
        ),
        request_id=request_id or "",
    )


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, TaskOwnershipError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user") from exc
    if isinstance(exc, TaskNotEditableError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found") from exc
