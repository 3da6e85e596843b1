"""Schedule endpoints."""

from __future__ import annotations

import logging
import re
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ...models.domain import FailureKind, OptimizationFailed
from ...schemas.responses import (
    AvailableDatesResponse,
    CacheClearedResponse,
    ScheduleMetrics,
    SmartOptimizeFailure,
    SmartOptimizeSuccess,
)
from ...schemas.schedule import (
    DaySchedule,
    OptimizedSchedule,
    ScheduleSummary,
    SmartOptimizeRequest,
    TimeSavingsSummary,
)
from ...services.scheduling.gateway import SmartScheduleGateway, describe_failure
from ...services.scheduling.metrics import available_dates, extract_metrics, schedule_for_date, todays_schedule
from ...services.scheduling.orchestrator import SmartScheduleOrchestrator
from ..auth import get_caller_id, require_schedule_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["schedule"])

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FAILURE_STATUS: dict[str, int] = {
    FailureKind.VALIDATION.value: status.HTTP_400_BAD_REQUEST,
    FailureKind.NO_CUSTOMERS.value: status.HTTP_404_NOT_FOUND,
    FailureKind.FORBIDDEN.value: status.HTTP_403_FORBIDDEN,
    FailureKind.ENGINE_FAULT.value: status.HTTP_502_BAD_GATEWAY,
    FailureKind.MALFORMED.value: status.HTTP_502_BAD_GATEWAY,
    FailureKind.UNREACHABLE.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_orchestrator(request: Request) -> SmartScheduleOrchestrator:
    return request.app.state.orchestrator


def get_gateway(request: Request) -> SmartScheduleGateway:
    return request.app.state.gateway


async def _load_schedule(user_id: str, orchestrator: SmartScheduleOrchestrator) -> OptimizedSchedule:
    outcome = await orchestrator.get_optimized_schedule(user_id)
    if isinstance(outcome, OptimizationFailed):
        raise HTTPException(status_code=FAILURE_STATUS[outcome.kind.value], detail=describe_failure(outcome))
    return outcome.schedule


@router.post(
    "/smart-optimize/{user_id}",
    response_model=SmartOptimizeSuccess,
    responses={
        400: {"model": SmartOptimizeFailure},
        403: {"model": SmartOptimizeFailure},
        404: {"model": SmartOptimizeFailure},
        502: {"model": SmartOptimizeFailure},
        503: {"model": SmartOptimizeFailure},
    },
)
async def smart_optimize(
    user_id: str,
    payload: SmartOptimizeRequest | None = None,
    caller_id: str = Depends(get_caller_id),
    gateway: SmartScheduleGateway = Depends(get_gateway),
):
    payload = payload or SmartOptimizeRequest()
    result = await gateway.smart_optimize(
        caller_id=caller_id,
        user_id=user_id,
        work_schedule=payload.work_schedule,
        start_location=payload.cleaner_location,
    )
    if isinstance(result, SmartOptimizeFailure):
        return JSONResponse(
            status_code=FAILURE_STATUS.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            content=result.model_dump(mode="json", by_alias=True),
        )
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))


@router.get("/{user_id}", response_model=OptimizedSchedule)
async def get_schedule(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> OptimizedSchedule:
    """Return the cached schedule, optimizing with default settings when it is stale."""
    return await _load_schedule(user_id, orchestrator)


@router.get("/{user_id}/today", response_model=DaySchedule)
async def get_todays_schedule(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> DaySchedule:
    schedule = await _load_schedule(user_id, orchestrator)
    today = orchestrator.today()
    day = todays_schedule(schedule, today)
    if day is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No schedule found for today ({today.isoformat()})",
        )
    return day


@router.get("/{user_id}/dates", response_model=AvailableDatesResponse, response_model_by_alias=True)
async def get_available_dates(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> AvailableDatesResponse:
    schedule = await _load_schedule(user_id, orchestrator)
    return AvailableDatesResponse(user_id=user_id, dates=available_dates(schedule))


@router.get("/{user_id}/date/{day}", response_model=DaySchedule)
async def get_schedule_for_date(
    day: str,
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> DaySchedule:
    if not ISO_DATE_PATTERN.match(day):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date format. Use YYYY-MM-DD")
    try:
        requested = date.fromisoformat(day)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date: {day}") from exc

    schedule = await _load_schedule(user_id, orchestrator)
    day_schedule = schedule_for_date(schedule, requested)
    if day_schedule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No schedule found for {day}")
    return day_schedule


@router.get("/{user_id}/summary", response_model=ScheduleSummary)
async def get_schedule_summary(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> ScheduleSummary:
    schedule = await _load_schedule(user_id, orchestrator)
    return schedule.summary


@router.get("/{user_id}/time-savings", response_model=TimeSavingsSummary)
async def get_time_savings(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> TimeSavingsSummary:
    schedule = await _load_schedule(user_id, orchestrator)
    return schedule.time_savings_summary


@router.get("/{user_id}/metrics", response_model=ScheduleMetrics, response_model_by_alias=True)
async def get_metrics(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> ScheduleMetrics:
    schedule = await _load_schedule(user_id, orchestrator)
    return extract_metrics(schedule)


@router.delete("/{user_id}/cache", response_model=CacheClearedResponse, response_model_by_alias=True)
def clear_cache(
    user_id: str = Depends(require_schedule_owner),
    orchestrator: SmartScheduleOrchestrator = Depends(get_orchestrator),
) -> CacheClearedResponse:
    """Drop the cached schedule so the next request recomputes it."""
    cleared = orchestrator.clear_cache(user_id)
    message = "Schedule cache cleared" if cleared else "No cached schedule to clear"
    return CacheClearedResponse(success=True, cleared=cleared, message=message)
