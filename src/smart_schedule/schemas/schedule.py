"""Schedule request/response schemas shared with the optimization engine."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

WEEKDAY_FIELDS: tuple[str, ...] = (
    "monday_hours",
    "tuesday_hours",
    "wednesday_hours",
    "thursday_hours",
    "friday_hours",
    "saturday_hours",
    "sunday_hours",
)


class WorkSchedule(BaseModel):
    """Available working hours per weekday. ``None`` means not a working day."""

    model_config = ConfigDict(extra="forbid")

    monday_hours: Optional[float] = None
    tuesday_hours: Optional[float] = None
    wednesday_hours: Optional[float] = None
    thursday_hours: Optional[float] = None
    friday_hours: Optional[float] = None
    saturday_hours: Optional[float] = None
    sunday_hours: Optional[float] = None

    @field_validator(*WEEKDAY_FIELDS)
    @classmethod
    def _hours_in_range(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        if not 0 < value <= 24:
            raise ValueError(f"working hours must be greater than 0 and at most 24 (got {value})")
        return value

    @model_validator(mode="after")
    def _has_working_day(self) -> "WorkSchedule":
        if not self.working_days():
            raise ValueError("work schedule must contain at least one working day")
        return self

    def working_days(self) -> Dict[str, float]:
        hours_by_day = {name: getattr(self, name) for name in WEEKDAY_FIELDS}
        return {name: hours for name, hours in hours_by_day.items() if hours is not None}

    @classmethod
    def default(cls) -> "WorkSchedule":
        return cls(
            monday_hours=8,
            tuesday_hours=8,
            wednesday_hours=8,
            thursday_hours=8,
            friday_hours=8,
            saturday_hours=4,
            sunday_hours=None,
        )


class StartLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ScheduleCustomer(BaseModel):
    id: str
    name: str
    address: str = ""
    lat: float
    lng: float
    price: float = 0.0
    estimated_duration: float = Field(0.0, ge=0, description="Service duration in minutes.")
    days_since_cleaned: int = 0
    days_overdue: int = Field(0, ge=0)
    urgency_score: float = 0.0
    next_due_date: Optional[date] = None
    route_order: int = Field(..., ge=1)


class TimeSavings(BaseModel):
    optimized_travel_time_minutes: float = 0.0
    unoptimized_travel_time_minutes: float = 0.0
    time_savings_minutes: float = 0.0
    time_savings_hours: float = 0.0
    fuel_savings_estimate_gbp: float = 0.0
    efficiency_improvement_percent: float = 0.0
    extra_customers_possible: int = 0


class DaySchedule(BaseModel):
    date: date
    day: str
    max_hours: float = Field(..., ge=0)
    customers: List[ScheduleCustomer] = Field(default_factory=list)
    total_duration_minutes: float = 0.0
    total_revenue: float = 0.0
    estimated_travel_time: float = 0.0
    time_savings: TimeSavings = Field(default_factory=TimeSavings)

    @field_validator("customers")
    @classmethod
    def _contiguous_route_order(cls, customers: List[ScheduleCustomer]) -> List[ScheduleCustomer]:
        ordered = sorted(customers, key=lambda customer: customer.route_order)
        orders = [customer.route_order for customer in ordered]
        if orders != list(range(1, len(ordered) + 1)):
            raise ValueError(f"route_order must run 1..{len(ordered)} without gaps or duplicates (got {orders})")
        return ordered

    @property
    def planned_minutes(self) -> float:
        return sum(customer.estimated_duration for customer in self.customers) + self.estimated_travel_time

    @property
    def overflow_minutes(self) -> float:
        """Minutes planned beyond the day's capacity, zero when the day fits."""
        return max(0.0, self.planned_minutes - self.max_hours * 60)


class ScheduleSummary(BaseModel):
    total_customers_scheduled: int = 0
    total_revenue: float = 0.0
    total_work_hours: float = 0.0
    working_days: int = 0
    average_customers_per_day: float = 0.0
    average_revenue_per_day: float = 0.0


class TimeSavingsSummary(BaseModel):
    total_time_saved_minutes: float = 0.0
    total_time_saved_hours: float = 0.0
    total_fuel_saved_gbp: float = 0.0
    extra_customers_per_week: int = 0
    weekly_efficiency_gain: Union[str, float] = "0%"


class OptimizedSchedule(BaseModel):
    """Engine output for one user over a multi-day horizon."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: Optional[str] = None
    work_schedule: Optional[WorkSchedule] = Field(
        default=None,
        validation_alias=AliasChoices("work_schedule", "work_schedule_received"),
    )
    customers_from_database: int = Field(0, ge=0)
    schedule: Dict[str, DaySchedule] = Field(default_factory=dict)
    summary: ScheduleSummary = Field(default_factory=ScheduleSummary)
    time_savings_summary: TimeSavingsSummary = Field(default_factory=TimeSavingsSummary)
    unscheduled_customers: int = Field(0, ge=0)
    message: Optional[str] = None

    @field_validator("schedule")
    @classmethod
    def _keys_match_dates(cls, schedule: Dict[str, DaySchedule]) -> Dict[str, DaySchedule]:
        for key, day in schedule.items():
            try:
                parsed = date.fromisoformat(key)
            except ValueError as exc:
                raise ValueError(f"schedule key '{key}' is not an ISO date") from exc
            if parsed != day.date:
                raise ValueError(f"schedule key '{key}' does not match day date {day.date.isoformat()}")
        return schedule

    def sorted_days(self) -> List[DaySchedule]:
        return [self.schedule[key] for key in sorted(self.schedule)]


class SmartOptimizeRequest(BaseModel):
    """Gateway payload. Both fields are optional and validated by the gateway."""

    model_config = ConfigDict(populate_by_name=True)

    work_schedule: Optional[dict] = Field(
        default=None,
        validation_alias=AliasChoices("workSchedule", "work_schedule"),
    )
    cleaner_location: Optional[dict] = Field(
        default=None,
        validation_alias=AliasChoices("cleanerLocation", "cleaner_location", "cleaner_start_location"),
    )
