"""Gateway use case: validate caller input, run the orchestrator, build the envelope."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from pydantic import ValidationError

from ...models.domain import FailureKind, OptimizationFailed, OptimizationSucceeded
from ...schemas.responses import (
    SmartOptimizeData,
    SmartOptimizeFailure,
    SmartOptimizeResponse,
    SmartOptimizeSuccess,
)
from ...schemas.schedule import StartLocation, WorkSchedule
from .metrics import extract_metrics, todays_schedule
from .orchestrator import SmartScheduleOrchestrator, default_start_location

logger = logging.getLogger(__name__)

FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.VALIDATION: "Your work schedule is invalid: {detail}. Please fix your working hours and try again.",
    FailureKind.NO_CUSTOMERS: (
        "No customers found for your account. Please add some customers before optimizing your schedule."
    ),
    FailureKind.ENGINE_FAULT: (
        "The optimization service had a problem. Please try again in a moment. "
        "If the problem persists, contact support."
    ),
    FailureKind.MALFORMED: (
        "The optimization service returned an unexpected response. Please try again in a moment. "
        "If the problem persists, contact support."
    ),
    FailureKind.UNREACHABLE: "We could not reach the optimization service. Please try again shortly.",
    FailureKind.FORBIDDEN: "You are not allowed to optimize this schedule.",
}

WorkScheduleInput = Union[WorkSchedule, Mapping[str, Any], None]
StartLocationInput = Union[StartLocation, Mapping[str, Any], None]


def _validation_detail(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def failure_response(kind: FailureKind, detail: str = "") -> SmartOptimizeFailure:
    return SmartOptimizeFailure(
        error=FAILURE_MESSAGES[kind].format(detail=detail),
        error_code=kind.value,
        retryable=kind.retryable,
    )


def success_message(outcome: OptimizationSucceeded) -> str:
    summary = outcome.schedule.summary
    revenue = f"£{summary.total_revenue:,.2f}"
    if outcome.is_first_time:
        return (
            "Welcome! Your schedule has been optimized for the first time. "
            f"{summary.total_customers_scheduled} customers scheduled across {summary.working_days} days. "
            f"Total weekly revenue: {revenue}."
        )
    protected = ", ".join(day.isoformat() for day in outcome.protected_dates)
    protected_info = f" Protected dates: {protected}." if protected else ""
    return (
        f"Schedule re-optimized successfully.{protected_info} "
        f"{summary.total_customers_scheduled} customers optimized. "
        f"Total weekly revenue: {revenue}."
    )


class SmartScheduleGateway:
    def __init__(self, orchestrator: SmartScheduleOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def smart_optimize(
        self,
        caller_id: str,
        user_id: str,
        work_schedule: WorkScheduleInput = None,
        start_location: StartLocationInput = None,
    ) -> SmartOptimizeResponse:
        if caller_id != user_id:
            logger.warning(f"Caller {caller_id} attempted to optimize the schedule of user {user_id}")
            return failure_response(FailureKind.FORBIDDEN)

        try:
            schedule_input = self._parse_work_schedule(work_schedule)
            location_input = self._parse_start_location(start_location)
        except ValidationError as exc:
            detail = _validation_detail(exc)
            logger.info(f"Rejected smart optimization request for user {user_id}: {detail}")
            return failure_response(FailureKind.VALIDATION, detail)

        outcome = await self.orchestrator.smart_optimize(user_id, schedule_input, location_input)
        if isinstance(outcome, OptimizationFailed):
            return failure_response(outcome.kind, outcome.detail)
        return self._success(outcome)

    def _parse_work_schedule(self, work_schedule: WorkScheduleInput) -> WorkSchedule:
        if work_schedule is None:
            return WorkSchedule.default()
        if isinstance(work_schedule, WorkSchedule):
            return work_schedule
        return WorkSchedule.model_validate(dict(work_schedule))

    def _parse_start_location(self, start_location: StartLocationInput) -> StartLocation:
        if start_location is None:
            return default_start_location()
        if isinstance(start_location, StartLocation):
            return start_location
        return StartLocation.model_validate(dict(start_location))

    def _success(self, outcome: OptimizationSucceeded) -> SmartOptimizeSuccess:
        schedule = outcome.schedule
        data = SmartOptimizeData(
            full_schedule=schedule.schedule,
            todays_schedule=todays_schedule(schedule, self.orchestrator.today()),
            metrics=extract_metrics(schedule),
            summary=schedule.summary,
            time_savings=schedule.time_savings_summary,
            unscheduled_customers=schedule.unscheduled_customers,
            customers_from_database=schedule.customers_from_database,
        )
        return SmartOptimizeSuccess(
            is_first_time=outcome.is_first_time,
            protected_dates=outcome.protected_dates,
            optimization_type="first_time" if outcome.is_first_time else "protected_reoptimization",
            message=success_message(outcome),
            data=data,
        )


def describe_failure(outcome: OptimizationFailed) -> str:
    return FAILURE_MESSAGES[outcome.kind].format(detail=outcome.detail)
