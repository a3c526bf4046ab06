"""Schedule customization and confirmation endpoints."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_ai_client, get_schedule_store
from app.api.schemas.schedule import (
    ActiveScheduleData,
    ActiveScheduleResponse,
    ConfirmScheduleData,
    ConfirmScheduleRequest,
    ConfirmScheduleResponse,
    CustomizeScheduleData,
    CustomizeScheduleRequest,
    CustomizeScheduleResponse,
    ScheduledTask,
    StopScheduleData,
    StopScheduleRequest,
    StopScheduleResponse,
)
from app.core.config import settings
from app.core.context import bind_user_id
from app.core.errors import ParseError, PersistenceError
from app.observability.metrics import log_metric
from app.observability.tracing import annotate, trace
from app.services.active_schedule import get_active_schedule, stop_schedule
from app.services.schedule_confirmation import confirm_schedule
from app.services.schedule_customizer import CompletionClient, customize_schedule
from app.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedule"])

CONFIRM_FAILURE_PREFIX = "Failed to confirm schedule"


@router.post("/customize-schedule", response_model=CustomizeScheduleResponse)
def customize_schedule_endpoint(
    payload: CustomizeScheduleRequest,
    http_request: Request,
    store: ScheduleStore = Depends(get_schedule_store),
    ai_client: CompletionClient = Depends(get_ai_client),
) -> CustomizeScheduleResponse:
    """Rewrite the current schedule according to the user's request and role model."""
    bind_user_id(http_request, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    base_metadata: Dict[str, Any] = {
        "route": "/customize-schedule",
        "role_model_id": str(payload.role_model_id),
        "slots_in": len(payload.current_schedule),
        "query_length": len(payload.user_query),
    }

    start_time = perf_counter()
    success = False
    try:
        with trace(
            "schedule.customize",
            metadata=base_metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ) as span:
            try:
                result = customize_schedule(
                    store=store,
                    ai_client=ai_client,
                    role_model_id=payload.role_model_id,
                    current_schedule=payload.current_schedule,
                    user_query=payload.user_query,
                )
            except ParseError as exc:
                logger.warning("AI response could not be parsed: %s", exc.message)
                raise
            success = True
            annotate(span, **base_metadata, slots_out=len(result.modified_schedule))
    finally:
        latency_ms = (perf_counter() - start_time) * 1000
        metric_metadata = {"user_id": str(payload.user_id), "role_model_id": str(payload.role_model_id)}
        log_metric("schedule.customize.success", 1 if success else 0, metadata=metric_metadata)
        log_metric("schedule.customize.latency_ms", latency_ms, metadata=metric_metadata)

    return CustomizeScheduleResponse(
        data=CustomizeScheduleData(
            message=result.message,
            modified_schedule=result.modified_schedule,
            original_schedule=result.original_schedule,
        )
    )


@router.post("/confirm-schedule", response_model=ConfirmScheduleResponse)
def confirm_schedule_endpoint(
    payload: ConfirmScheduleRequest,
    http_request: Request,
    store: ScheduleStore = Depends(get_schedule_store),
) -> ConfirmScheduleResponse:
    """Persist the schedule and make it the user's active schedule."""
    bind_user_id(http_request, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    base_metadata: Dict[str, Any] = {
        "route": "/confirm-schedule",
        "role_model_id": str(payload.role_model_id),
        "slots": len(payload.schedule),
    }

    success = False
    try:
        with trace(
            "schedule.confirm",
            metadata=base_metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ) as span:
            try:
                result = confirm_schedule(
                    store=store,
                    user_id=payload.user_id,
                    role_model_id=payload.role_model_id,
                    schedule=payload.schedule,
                    duration_days=settings.schedule_duration_days,
                )
            except PersistenceError as exc:
                raise PersistenceError(f"{CONFIRM_FAILURE_PREFIX}: {exc.message}") from exc
            success = True
            annotate(span, **base_metadata, user_schedule_id=str(result.user_schedule_id))
    finally:
        log_metric(
            "schedule.confirm.success",
            1 if success else 0,
            metadata={"user_id": str(payload.user_id), "role_model_id": str(payload.role_model_id)},
        )

    return ConfirmScheduleResponse(
        data=ConfirmScheduleData(
            user_schedule_id=result.user_schedule_id,
            tasks_created=result.tasks_created,
            message=f"Schedule confirmed! You're now following {payload.role_model_name}'s routine.",
        )
    )


@router.get("/active-schedule/{user_id}", response_model=ActiveScheduleResponse)
def active_schedule_endpoint(
    user_id: UUID,
    http_request: Request,
    store: ScheduleStore = Depends(get_schedule_store),
) -> ActiveScheduleResponse:
    """Return the user's active schedule with its tasks in display order."""
    bind_user_id(http_request, user_id)
    active = get_active_schedule(store, user_id)
    if active is None:
        return ActiveScheduleResponse(data=None)

    header = active.schedule
    return ActiveScheduleResponse(
        data=ActiveScheduleData(
            user_schedule_id=header.id,
            role_model_id=header.role_model_id,
            status=header.status,
            total_score=header.total_score,
            start_date=header.start_date,
            end_date=header.end_date,
            tasks=[
                ScheduledTask(
                    id=task.id,
                    start_time=task.start_time,
                    end_time=task.end_time,
                    activity_name=task.activity_name,
                    category=task.category,
                    is_completed=task.is_completed,
                    display_order=task.display_order,
                )
                for task in active.tasks
            ],
        )
    )


@router.post("/stop-schedule", response_model=StopScheduleResponse)
def stop_schedule_endpoint(
    payload: StopScheduleRequest,
    http_request: Request,
    store: ScheduleStore = Depends(get_schedule_store),
) -> StopScheduleResponse:
    """Complete the active schedule so the user can start a new one."""
    bind_user_id(http_request, payload.user_id)
    schedule = stop_schedule(store, payload.user_id)
    log_metric("schedule.stop", 1, metadata={"user_id": str(payload.user_id)})
    return StopScheduleResponse(
        data=StopScheduleData(user_schedule_id=schedule.id, status=schedule.status),
        message="Schedule stopped.",
    )
