"""Flat metric and read views over an optimized schedule."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from ...schemas.responses import ScheduleMetrics
from ...schemas.schedule import DaySchedule, OptimizedSchedule


def _number(value: Any) -> float:
    """Coerce engine numbers like ``12``, ``"12.5"`` or ``"18.5%"``; anything else is 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%").strip())
        except ValueError:
            return 0.0
    return 0.0


def extract_metrics(schedule: OptimizedSchedule) -> ScheduleMetrics:
    summary = schedule.summary
    savings = schedule.time_savings_summary
    return ScheduleMetrics(
        total_customers=int(_number(summary.total_customers_scheduled)),
        total_revenue=_number(summary.total_revenue),
        working_days=int(_number(summary.working_days)),
        total_work_hours=_number(summary.total_work_hours),
        time_saved_hours=_number(savings.total_time_saved_hours),
        fuel_saved_gbp=_number(savings.total_fuel_saved_gbp),
        efficiency_gain_percent=_number(savings.weekly_efficiency_gain),
        extra_customers_possible=int(_number(savings.extra_customers_per_week)),
        unscheduled_customers=int(_number(schedule.unscheduled_customers)),
        customers_from_database=int(_number(schedule.customers_from_database)),
        daily_schedules=len(schedule.schedule),
    )


def schedule_for_date(schedule: OptimizedSchedule, day: date) -> Optional[DaySchedule]:
    return schedule.schedule.get(day.isoformat())


def todays_schedule(schedule: OptimizedSchedule, today: date) -> Optional[DaySchedule]:
    return schedule_for_date(schedule, today)


def available_dates(schedule: OptimizedSchedule) -> list[str]:
    return sorted(schedule.schedule)
