"""Communication plan API routes."""
from __future__ import annotations

from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from routine_engine.api.schemas.communication_plan import CommunicationPlanRequest, CommunicationPlanResponse
from routine_engine.core.clock import get_zone
from routine_engine.db.deps import get_db
from routine_engine.observability.metrics import log_latency, log_metric
from routine_engine.observability.tracing import trace
from routine_engine.services.periods import parse_weekdays
from routine_engine.services.routine_models import CommunicationPlan
from routine_engine.services.routine_service import save_plan_and_regenerate
from routine_engine.services.routine_store import SqlRoutineStore
from routine_engine.services.user_service import get_or_create_user

router = APIRouter()


@router.get("/communication-plan", response_model=CommunicationPlanResponse, tags=["communication-plan"])
def get_communication_plan(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> CommunicationPlanResponse:
    request_id = getattr(http_request.state, "request_id", None)

    with trace(
        "communication_plan.get",
        metadata={"user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        store = SqlRoutineStore(db, get_zone())
        plan = store.load_plan(user_id)
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Communication plan not found")
        generated = sum(1 for task in store.load_tasks(user_id) if task.is_auto_generated)

    log_metric("communication_plan.get.success", 1, metadata={"user_id": str(user_id)})
    return _serialize_plan(user_id, plan, generated, request_id)


@router.put("/communication-plan", response_model=CommunicationPlanResponse, tags=["communication-plan"])
def put_communication_plan(
    payload: CommunicationPlanRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> CommunicationPlanResponse:
    """Save the plan and rebuild the auto-generated routine from it.

    Custom tasks are kept. Generated tasks and their completions are replaced.
    """
    request_id = getattr(http_request.state, "request_id", None)
    plan = CommunicationPlan(
        active_days=frozenset(payload.active_days),
        daily_time_minutes=payload.daily_time_minutes,
        monthly_goal=payload.monthly_goal,
        channels=tuple(dict.fromkeys(payload.channels)),
        instagram_posts_week=payload.instagram_posts_week,
        instagram_stories_week=payload.instagram_stories_week,
        instagram_reels_month=payload.instagram_reels_month,
        linkedin_posts_week=payload.linkedin_posts_week,
        newsletter_frequency=payload.newsletter_frequency,
    )

    started = perf_counter()
    try:
        with trace(
            "communication_plan.save",
            metadata={
                "user_id": str(payload.user_id),
                "active_days": len(plan.active_days),
                "channels": list(plan.channels),
                "request_id": request_id,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            saved, generated = save_plan_and_regenerate(
                db,
                SqlRoutineStore(db, get_zone()),
                user_id=payload.user_id,
                plan=plan,
                request_id=request_id,
            )
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    log_metric("communication_plan.save.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric(
        "communication_plan.save.generated_tasks",
        len(generated),
        metadata={"user_id": str(payload.user_id)},
    )
    log_latency("communication_plan.save", started, metadata={"user_id": str(payload.user_id)})
    return _serialize_plan(payload.user_id, saved, len(generated), request_id)


def _serialize_plan(
    user_id: UUID,
    plan: CommunicationPlan,
    generated_tasks: int,
    request_id: str | None,
) -> CommunicationPlanResponse:
    return CommunicationPlanResponse(
        user_id=user_id,
        daily_time_minutes=plan.daily_time_minutes,
        active_days=parse_weekdays(plan.active_days),
        monthly_goal=plan.monthly_goal,
        channels=list(plan.channels),
        instagram_posts_week=plan.instagram_posts_week,
        instagram_stories_week=plan.instagram_stories_week,
        instagram_reels_month=plan.instagram_reels_month,
        linkedin_posts_week=plan.linkedin_posts_week,
        newsletter_frequency=plan.newsletter_frequency,
        generated_tasks=generated_tasks,
        request_id=request_id or "",
    )
