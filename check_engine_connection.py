#!/usr/bin/env python3
"""Verify the optimization engine is reachable and answers an optimize call."""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from smart_schedule.config import settings
from smart_schedule.models.domain import EngineError, EngineErrorKind
from smart_schedule.schemas.schedule import StartLocation, WorkSchedule
from smart_schedule.services.scheduling.engine_client import OptimizationEngineClient
from smart_schedule.services.scheduling.metrics import extract_metrics


async def run(user_id: str | None) -> int:
    print("=" * 60)
    print("Optimization Engine Connection Test")
    print("=" * 60)
    print()

    print("1. Checking engine configuration...")
    if not settings.engine_base_url:
        print("   [ERROR] SMARTSCHED_ENGINE_BASE_URL is not configured")
        return 1
    client = OptimizationEngineClient()
    print(f"   [OK] Engine Base URL: {client.base_url}")
    print(f"   [OK] Timeout: {client.timeout}s")
    print()

    print("2. Testing engine health check...")
    if not await client.check_health():
        print("   [ERROR] Engine is not responding on /health")
        return 1
    print("   [OK] Engine is healthy and accessible!")
    print()

    if not user_id:
        print("Pass a user id to also run an optimize call: check_engine_connection.py <user_id>")
        return 0

    print(f"3. Requesting a weekly schedule for user {user_id}...")
    try:
        schedule = await client.optimize(
            user_id,
            WorkSchedule.default(),
            StartLocation(lat=settings.default_start_lat, lng=settings.default_start_lng),
        )
    except EngineError as e:
        if e.kind is EngineErrorKind.NOT_FOUND:
            print(f"   [OK] Engine answered, but user {user_id} has no customers")
            return 0
        print(f"   [ERROR] {e.kind.value}: {e.message}")
        return 1

    metrics = extract_metrics(schedule)
    print(f"   [OK] {metrics.total_customers} customers over {metrics.daily_schedules} days")
    print(f"   [OK] Revenue £{metrics.total_revenue:.2f}, {metrics.unscheduled_customers} unscheduled")
    print()
    print("=" * 60)
    print("[SUCCESS] Optimization engine is connected and working!")
    print("=" * 60)
    return 0


def main() -> int:
    user_id = sys.argv[1] if len(sys.argv) > 1 else None
    return asyncio.run(run(user_id))


if __name__ == "__main__":
    sys.exit(main())
