"""Smart schedule orchestration service."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Awaitable, Callable, Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from ...config import settings
from ...models.domain import (
    ENGINE_FAILURES,
    EngineError,
    EngineErrorKind,
    FailureKind,
    NoPriorSchedule,
    OptimizationFailed,
    OptimizationOutcome,
    OptimizationSucceeded,
    PriorSchedule,
)
from ...schemas.schedule import (
    DaySchedule,
    OptimizedSchedule,
    ScheduleSummary,
    StartLocation,
    TimeSavingsSummary,
    WorkSchedule,
)
from .cache import Clock, ScheduleCache, utc_now
from .protection import protected_dates

logger = logging.getLogger(__name__)


def default_start_location() -> StartLocation:
    return StartLocation(lat=settings.default_start_lat, lng=settings.default_start_lng)


def _request_fingerprint(work_schedule: WorkSchedule, start_location: StartLocation) -> str:
    return json.dumps(
        {"work_schedule": work_schedule.model_dump(), "start": start_location.model_dump()},
        sort_keys=True,
    )


def _without_customers(day: DaySchedule, customer_ids: set[str]) -> DaySchedule:
    """Drop customers from an unprotected day and close the route order gaps."""
    removed = [customer for customer in day.customers if customer.id in customer_ids]
    if not removed:
        return day
    kept = [customer for customer in day.customers if customer.id not in customer_ids]
    renumbered = [
        customer.model_copy(update={"route_order": position})
        for position, customer in enumerate(kept, start=1)
    ]
    return day.model_copy(
        update={
            "customers": renumbered,
            "total_duration_minutes": max(
                0.0, day.total_duration_minutes - sum(customer.estimated_duration for customer in removed)
            ),
            "total_revenue": round(day.total_revenue - sum(customer.price for customer in removed), 2),
        }
    )


def merge_protected_days(
    proposed: OptimizedSchedule,
    prior: OptimizedSchedule,
    dates: Iterable[date],
) -> OptimizedSchedule:
    """Overlay the prior schedule's days for ``dates`` onto the engine proposal.

    A protected date missing from the prior schedule stays empty. Customers
    already committed on a protected day are removed from the other days, and
    customers the engine placed on a protected day that appear nowhere else are
    counted as unscheduled.
    """
    protected_keys = {day.isoformat() for day in dates}
    merged: Dict[str, DaySchedule] = {}
    for key, day in proposed.schedule.items():
        if key not in protected_keys:
            merged[key] = day
    for key in protected_keys:
        kept = prior.schedule.get(key)
        if kept is not None:
            merged[key] = kept.model_copy(deep=True)

    if merged == proposed.schedule:
        return proposed

    committed_ids = {
        customer.id for key in protected_keys if key in merged for customer in merged[key].customers
    }
    for key in list(merged):
        if key not in protected_keys:
            merged[key] = _without_customers(merged[key], committed_ids)

    placed_ids = {customer.id for day in merged.values() for customer in day.customers}
    displaced_ids = {
        customer.id
        for key in protected_keys
        if key in proposed.schedule
        for customer in proposed.schedule[key].customers
        if customer.id not in placed_ids
    }

    result = proposed.model_copy(
        update={
            "schedule": dict(sorted(merged.items())),
            "unscheduled_customers": proposed.unscheduled_customers + len(displaced_ids),
        }
    )
    return rebuild_summaries(result)


def rebuild_summaries(schedule: OptimizedSchedule) -> OptimizedSchedule:
    """Recompute the week-level rollups from the day schedules."""
    days = schedule.sorted_days()
    total_customers = sum(len(day.customers) for day in days)
    total_revenue = round(sum(day.total_revenue for day in days), 2)
    working_days = sum(1 for day in days if day.customers)
    total_minutes = sum(day.total_duration_minutes for day in days)

    summary = ScheduleSummary(
        total_customers_scheduled=total_customers,
        total_revenue=total_revenue,
        total_work_hours=round(total_minutes / 60, 2),
        working_days=working_days,
        average_customers_per_day=round(total_customers / working_days, 1) if working_days else 0.0,
        average_revenue_per_day=round(total_revenue / working_days, 2) if working_days else 0.0,
    )

    saved_minutes = sum(day.time_savings.time_savings_minutes for day in days)
    unoptimized_minutes = sum(day.time_savings.unoptimized_travel_time_minutes for day in days)
    efficiency = (saved_minutes / unoptimized_minutes * 100) if unoptimized_minutes else 0.0
    time_savings = TimeSavingsSummary(
        total_time_saved_minutes=round(saved_minutes, 1),
        total_time_saved_hours=round(saved_minutes / 60, 1),
        total_fuel_saved_gbp=round(sum(day.time_savings.fuel_savings_estimate_gbp for day in days), 2),
        extra_customers_per_week=sum(day.time_savings.extra_customers_possible for day in days),
        weekly_efficiency_gain=f"{efficiency:.1f}%",
    )
    return schedule.model_copy(update={"summary": summary, "time_savings_summary": time_savings})


class SmartScheduleOrchestrator:
    """Decides first-time vs returning flow, calls the engine and keeps the cache current.

    Engine failures and unexpected errors come back as ``OptimizationFailed``
    and never leave this class as exceptions. The cache is written only after a successful call.
    """

    def __init__(
        self,
        cache: ScheduleCache,
        engine,
        clock: Clock | None = None,
        timezone: tzinfo | str | None = None,
        retry_backoff_seconds: float | None = None,
        capacity_tolerance_minutes: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self.engine = engine
        self._clock = clock or utc_now
        zone = timezone if timezone is not None else settings.schedule_timezone
        self.timezone = ZoneInfo(zone) if isinstance(zone, str) else zone
        self.retry_backoff_seconds = (
            retry_backoff_seconds if retry_backoff_seconds is not None else settings.engine_retry_backoff_seconds
        )
        self.capacity_tolerance_minutes = (
            capacity_tolerance_minutes
            if capacity_tolerance_minutes is not None
            else settings.capacity_tolerance_minutes
        )
        self._sleep = sleep
        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = {}
        self._in_flight: Dict[tuple[str, str], asyncio.Future] = {}

    def local_now(self) -> datetime:
        return self._clock().astimezone(self.timezone)

    def today(self) -> date:
        return self.local_now().date()

    async def smart_optimize(
        self,
        user_id: str,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
    ) -> OptimizationOutcome:
        """Optimize the user's week, protecting today and tomorrow for returning users.

        Identical concurrent requests for one user share a single engine call;
        different requests for the same user run one after another. The work
        runs in its own task, so a caller that goes away does not interrupt
        the cache write.
        """
        key = (user_id, _request_fingerprint(work_schedule, start_location))
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_exclusive(user_id, work_schedule, start_location))
            self._in_flight[key] = task
            task.add_done_callback(lambda _done, key=key: self._in_flight.pop(key, None))
        else:
            logger.info(f"Joining in-flight optimization for user {user_id}")

        outcome = await asyncio.shield(task)
        if isinstance(outcome, OptimizationSucceeded):
            return replace(outcome, schedule=outcome.schedule.model_copy(deep=True))
        return outcome

    async def get_optimized_schedule(
        self,
        user_id: str,
        work_schedule: Optional[WorkSchedule] = None,
        start_location: Optional[StartLocation] = None,
    ) -> OptimizationOutcome:
        """Serve the fresh cached schedule, optimizing only when there is none."""
        cached = self.cache.get(user_id)
        if cached is not None:
            logger.info(f"Using cached schedule for user {user_id}")
            return OptimizationSucceeded(schedule=cached, is_first_time=False, protected_dates=[])
        return await self.smart_optimize(
            user_id,
            work_schedule or WorkSchedule.default(),
            start_location or default_start_location(),
        )

    def clear_cache(self, user_id: str) -> bool:
        return self.cache.clear(user_id)

    async def _run_exclusive(
        self,
        user_id: str,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
    ) -> OptimizationOutcome:
        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1
        try:
            async with lock:
                return await self._optimize(user_id, work_schedule, start_location)
        except Exception as exc:
            logger.exception(f"Unexpected error while optimizing schedule for user {user_id}")
            return OptimizationFailed(kind=FailureKind.ENGINE_FAULT, detail=str(exc) or type(exc).__name__)
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._user_locks[user_id]

    async def _optimize(
        self,
        user_id: str,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
    ) -> OptimizationOutcome:
        prior = self.cache.lookup(user_id)
        is_first_time = isinstance(prior, NoPriorSchedule)
        protected = protected_dates(self.local_now(), prior)
        if is_first_time:
            logger.info(f"First-time optimization for user {user_id}")
        else:
            logger.info(
                f"Re-optimizing schedule for user {user_id}, protecting "
                f"{', '.join(day.isoformat() for day in sorted(protected))}"
            )

        try:
            proposed = await self._call_engine(user_id, work_schedule, start_location, protected)
        except EngineError as exc:
            return self._failure(user_id, exc)

        schedule = proposed
        if isinstance(prior, PriorSchedule) and protected:
            schedule = merge_protected_days(proposed, prior.schedule, protected)

        self._report_overflow(user_id, schedule)
        self.cache.put(user_id, schedule)
        logger.info(
            f"Optimized schedule for user {user_id}: {schedule.summary.total_customers_scheduled} customers "
            f"across {len(schedule.schedule)} days"
        )
        return OptimizationSucceeded(
            schedule=schedule,
            is_first_time=is_first_time,
            protected_dates=sorted(protected),
        )

    async def _call_engine(
        self,
        user_id: str,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
        protected: frozenset[date],
    ) -> OptimizedSchedule:
        try:
            return await self.engine.optimize(user_id, work_schedule, start_location, protected)
        except EngineError as exc:
            if exc.kind is not EngineErrorKind.UNREACHABLE:
                raise
            logger.info(
                f"Optimization engine unreachable for user {user_id}, retrying in "
                f"{self.retry_backoff_seconds:.1f}s: {exc.message}"
            )
        await self._sleep(self.retry_backoff_seconds)
        return await self.engine.optimize(user_id, work_schedule, start_location, protected)

    def _failure(self, user_id: str, exc: EngineError) -> OptimizationFailed:
        if exc.kind is EngineErrorKind.MALFORMED:
            logger.error(f"Malformed optimization engine response for user {user_id}: {exc.message}")
        elif exc.kind is EngineErrorKind.NOT_FOUND:
            logger.info(f"Optimization engine found no customers for user {user_id}")
        else:
            logger.warning(f"Optimization failed for user {user_id} ({exc.kind.value}): {exc.message}")
        return OptimizationFailed(kind=ENGINE_FAILURES[exc.kind], detail=exc.message)

    def _report_overflow(self, user_id: str, schedule: OptimizedSchedule) -> None:
        for key, day in sorted(schedule.schedule.items()):
            if day.overflow_minutes > self.capacity_tolerance_minutes:
                logger.warning(
                    f"Schedule for user {user_id} on {key} exceeds {day.max_hours}h by "
                    f"{day.overflow_minutes:.0f} minutes"
                )
