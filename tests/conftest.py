from datetime import date, datetime, timedelta, timezone

import pytest

from smart_schedule.schemas.schedule import (
    DaySchedule,
    OptimizedSchedule,
    ScheduleCustomer,
    ScheduleSummary,
    TimeSavings,
    TimeSavingsSummary,
    WorkSchedule,
)

# Monday 19 October 2026, 10:00 in London (BST).
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 19)
TOMORROW = date(2026, 10, 20)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class DummyEngine:
    """Stands in for the optimization engine; replays queued results in order.

    The last queued result is repeated once the queue runs out.
    """

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls: list[dict] = []

    def queue(self, *results) -> None:
        self.results.extend(results)

    async def optimize(self, user_id, work_schedule, start_location, protected_dates=()):
        self.calls.append(
            {
                "user_id": user_id,
                "work_schedule": work_schedule,
                "start_location": start_location,
                "protected_dates": frozenset(protected_dates),
            }
        )
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result.model_copy(deep=True)


def make_customer(cid: str, route_order: int, price: float = 45.0, duration: float = 30.0) -> ScheduleCustomer:
    return ScheduleCustomer(
        id=cid,
        name=f"Customer {cid}",
        address=f"{route_order} High Street",
        lat=51.50 + route_order * 0.001,
        lng=-0.12 - route_order * 0.001,
        price=price,
        estimated_duration=duration,
        days_since_cleaned=28,
        days_overdue=0,
        urgency_score=0.5,
        next_due_date=TODAY,
        route_order=route_order,
    )


def make_day(day: date, customer_ids: list[str], price: float = 45.0, max_hours: float = 8) -> DaySchedule:
    customers = [make_customer(cid, position, price=price) for position, cid in enumerate(customer_ids, start=1)]
    return DaySchedule(
        date=day,
        day=day.strftime("%A"),
        max_hours=max_hours,
        customers=customers,
        total_duration_minutes=sum(customer.estimated_duration for customer in customers),
        total_revenue=round(sum(customer.price for customer in customers), 2),
        estimated_travel_time=20,
        time_savings=TimeSavings(
            optimized_travel_time_minutes=20,
            unoptimized_travel_time_minutes=30,
            time_savings_minutes=10,
            time_savings_hours=0.17,
            fuel_savings_estimate_gbp=1.5,
            efficiency_improvement_percent=33.3,
            extra_customers_possible=0,
        ),
    )


def make_schedule(days: dict, unscheduled: int = 0, user_id: str = "U1") -> OptimizedSchedule:
    """Build an engine-shaped schedule from ``{date: [customer ids]}``."""
    day_schedules = {day.isoformat(): make_day(day, ids) for day, ids in days.items()}
    total_customers = sum(len(day.customers) for day in day_schedules.values())
    total_revenue = round(sum(day.total_revenue for day in day_schedules.values()), 2)
    working_days = sum(1 for day in day_schedules.values() if day.customers)
    saved = 10.0 * len(day_schedules)
    return OptimizedSchedule(
        user_id=user_id,
        work_schedule=WorkSchedule.default(),
        customers_from_database=total_customers + unscheduled,
        schedule=day_schedules,
        summary=ScheduleSummary(
            total_customers_scheduled=total_customers,
            total_revenue=total_revenue,
            total_work_hours=round(sum(day.total_duration_minutes for day in day_schedules.values()) / 60, 2),
            working_days=working_days,
            average_customers_per_day=round(total_customers / working_days, 1) if working_days else 0,
            average_revenue_per_day=round(total_revenue / working_days, 2) if working_days else 0,
        ),
        time_savings_summary=TimeSavingsSummary(
            total_time_saved_minutes=saved,
            total_time_saved_hours=round(saved / 60, 1),
            total_fuel_saved_gbp=1.5 * len(day_schedules),
            extra_customers_per_week=0,
            weekly_efficiency_gain="33.3%",
        ),
        unscheduled_customers=unscheduled,
    )


def three_day_schedule() -> OptimizedSchedule:
    """Ten customers at 45.00 each over today, tomorrow and the day after."""
    return make_schedule(
        {
            TODAY: ["C1", "C2", "C3", "C4"],
            TOMORROW: ["C5", "C6", "C7"],
            TOMORROW + timedelta(days=1): ["C8", "C9", "C10"],
        }
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()
