"""Gateway response envelopes and presentation views."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .schedule import DaySchedule, ScheduleSummary, TimeSavingsSummary


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleMetrics(CamelModel):
    total_customers: int = 0
    total_revenue: float = 0.0
    working_days: int = 0
    total_work_hours: float = 0.0
    time_saved_hours: float = 0.0
    fuel_saved_gbp: float = Field(0.0, alias="fuelSavedGBP")
    efficiency_gain_percent: float = 0.0
    extra_customers_possible: int = 0
    unscheduled_customers: int = 0
    customers_from_database: int = 0
    daily_schedules: int = 0


class SmartOptimizeData(CamelModel):
    full_schedule: Dict[str, DaySchedule]
    todays_schedule: Optional[DaySchedule] = None
    metrics: ScheduleMetrics
    summary: ScheduleSummary
    time_savings: TimeSavingsSummary
    unscheduled_customers: int = 0
    customers_from_database: int = 0


class SmartOptimizeSuccess(CamelModel):
    success: Literal[True] = True
    is_first_time: bool
    protected_dates: List[date] = Field(default_factory=list)
    optimization_type: Literal["first_time", "protected_reoptimization"]
    message: str
    data: SmartOptimizeData


class SmartOptimizeFailure(CamelModel):
    success: Literal[False] = False
    error: str
    error_code: str
    retryable: bool = False
    optimization_type: Literal["failed"] = "failed"


SmartOptimizeResponse = Union[SmartOptimizeSuccess, SmartOptimizeFailure]


class AvailableDatesResponse(CamelModel):
    user_id: str
    dates: List[str]


class CacheClearedResponse(CamelModel):
    success: bool
    cleared: bool
    message: str
