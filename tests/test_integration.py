from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import TODAY, TOMORROW, DummyEngine, FrozenClock, three_day_schedule
from smart_schedule.main import create_app
from smart_schedule.models.domain import EngineError, EngineErrorKind
from smart_schedule.services.scheduling.cache import ScheduleCache
from smart_schedule.services.scheduling.orchestrator import SmartScheduleOrchestrator


async def _no_sleep(seconds: float) -> None:
    return None


def _build_client(engine: DummyEngine, clock: FrozenClock) -> TestClient:
    orchestrator = SmartScheduleOrchestrator(
        cache=ScheduleCache(ttl=300, clock=clock),
        engine=engine,
        clock=clock,
        timezone="Europe/London",
        sleep=_no_sleep,
    )
    return TestClient(create_app(orchestrator=orchestrator))


@pytest.fixture
def engine() -> DummyEngine:
    return DummyEngine(three_day_schedule())


@pytest.fixture
def api_client(engine: DummyEngine, clock: FrozenClock, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from smart_schedule.api import auth

    monkeypatch.setattr(auth.settings, "auth_enabled", False)
    with _build_client(engine, clock) as client:
        yield client


def test_root_and_health(api_client: TestClient):
    assert api_client.get("/").json()["status"] == "running"
    assert api_client.get("/api/health").json() == {"status": "ok"}

    cache_health = api_client.get("/api/health/cache").json()
    assert cache_health == {"service": "schedule-cache", "entries": 0, "ttl_seconds": 300}


def test_smart_optimize_first_time_then_protected(api_client: TestClient, engine: DummyEngine):
    first = api_client.post("/api/schedule/smart-optimize/U1", json={})

    assert first.status_code == 200
    payload = first.json()
    assert payload["success"] is True
    assert payload["isFirstTime"] is True
    assert payload["protectedDates"] == []
    assert payload["optimizationType"] == "first_time"
    assert payload["data"]["metrics"]["totalCustomers"] == 10
    assert payload["data"]["metrics"]["fuelSavedGBP"] == 4.5
    assert payload["data"]["todaysSchedule"]["date"] == TODAY.isoformat()

    second = api_client.post(
        "/api/schedule/smart-optimize/U1",
        json={"workSchedule": {"monday_hours": 6, "tuesday_hours": 6}, "cleanerLocation": {"lat": 53.48, "lng": -2.24}},
    )

    assert second.status_code == 200
    payload = second.json()
    assert payload["isFirstTime"] is False
    assert payload["optimizationType"] == "protected_reoptimization"
    assert payload["protectedDates"] == [TODAY.isoformat(), TOMORROW.isoformat()]
    assert engine.calls[1]["start_location"].lat == 53.48


def test_smart_optimize_without_body_uses_defaults(api_client: TestClient, engine: DummyEngine):
    response = api_client.post("/api/schedule/smart-optimize/U1")

    assert response.status_code == 200
    assert engine.calls[0]["work_schedule"].saturday_hours == 4


def test_smart_optimize_validation_error(api_client: TestClient, engine: DummyEngine):
    response = api_client.post("/api/schedule/smart-optimize/U1", json={"workSchedule": {"monday_hours": 30}})

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["errorCode"] == "validation_error"
    assert payload["optimizationType"] == "failed"
    assert engine.calls == []


@pytest.mark.parametrize(
    ("error", "status_code", "error_code", "retryable"),
    [
        (EngineError(EngineErrorKind.NOT_FOUND, "No customers found", 404), 404, "no_customers", False),
        (EngineError(EngineErrorKind.ENGINE_FAULT, "solver crashed", 500), 502, "engine_fault", True),
        (EngineError(EngineErrorKind.MALFORMED, "not json"), 502, "engine_malformed", True),
        (EngineError(EngineErrorKind.UNREACHABLE, "connection refused"), 503, "engine_unreachable", True),
    ],
)
def test_smart_optimize_engine_failures(
    clock: FrozenClock,
    monkeypatch: pytest.MonkeyPatch,
    error,
    status_code,
    error_code,
    retryable,
):
    from smart_schedule.api import auth

    monkeypatch.setattr(auth.settings, "auth_enabled", False)
    with _build_client(DummyEngine(error), clock) as client:
        response = client.post("/api/schedule/smart-optimize/U2", json={})
        cache_health = client.get("/api/health/cache").json()

    assert response.status_code == status_code
    assert response.json()["errorCode"] == error_code
    assert response.json()["retryable"] is retryable
    assert cache_health["entries"] == 0


def test_schedule_reads_are_served_from_cache(api_client: TestClient, engine: DummyEngine):
    api_client.post("/api/schedule/smart-optimize/U1", json={})

    schedule = api_client.get("/api/schedule/U1")
    dates = api_client.get("/api/schedule/U1/dates")
    today = api_client.get("/api/schedule/U1/today")
    summary = api_client.get("/api/schedule/U1/summary")
    savings = api_client.get("/api/schedule/U1/time-savings")
    metrics = api_client.get("/api/schedule/U1/metrics")

    assert schedule.status_code == 200
    assert sorted(schedule.json()["schedule"]) == dates.json()["dates"]
    assert dates.json()["userId"] == "U1"
    assert today.json()["date"] == TODAY.isoformat()
    assert [customer["id"] for customer in today.json()["customers"]] == ["C1", "C2", "C3", "C4"]
    assert summary.json()["total_revenue"] == 450.0
    assert savings.json()["weekly_efficiency_gain"] == "33.3%"
    assert metrics.json()["totalRevenue"] == 450.0
    assert len(engine.calls) == 1


def test_schedule_read_optimizes_when_nothing_cached(api_client: TestClient, engine: DummyEngine):
    response = api_client.get("/api/schedule/U1/summary")

    assert response.status_code == 200
    assert response.json()["total_customers_scheduled"] == 10
    assert len(engine.calls) == 1


def test_schedule_for_date(api_client: TestClient):
    api_client.post("/api/schedule/smart-optimize/U1", json={})

    found = api_client.get(f"/api/schedule/U1/date/{TOMORROW.isoformat()}")
    missing = api_client.get(f"/api/schedule/U1/date/{(TODAY + timedelta(days=30)).isoformat()}")
    malformed = api_client.get("/api/schedule/U1/date/19-10-2026")
    impossible = api_client.get("/api/schedule/U1/date/2026-02-30")

    assert found.status_code == 200
    assert found.json()["day"] == "Tuesday"
    assert missing.status_code == 404
    assert malformed.status_code == 400
    assert impossible.status_code == 400


def test_clear_cache_forces_first_time_again(api_client: TestClient, engine: DummyEngine):
    api_client.post("/api/schedule/smart-optimize/U1", json={})

    cleared = api_client.delete("/api/schedule/U1/cache")
    cleared_again = api_client.delete("/api/schedule/U1/cache")
    rerun = api_client.post("/api/schedule/smart-optimize/U1", json={})

    assert cleared.json() == {"success": True, "cleared": True, "message": "Schedule cache cleared"}
    assert cleared_again.json()["cleared"] is False
    assert rerun.json()["isFirstTime"] is True
    assert len(engine.calls) == 2


def test_reads_surface_engine_failures(clock: FrozenClock, monkeypatch: pytest.MonkeyPatch):
    from smart_schedule.api import auth

    monkeypatch.setattr(auth.settings, "auth_enabled", False)
    engine = DummyEngine(EngineError(EngineErrorKind.NOT_FOUND, "No customers found", 404))
    with _build_client(engine, clock) as client:
        response = client.get("/api/schedule/U2")

    assert response.status_code == 404
    assert "No customers found" in response.json()["detail"]


@pytest.fixture
def secured_client(engine: DummyEngine, clock: FrozenClock, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from smart_schedule.api import auth

    tokens = {"token-u1": "U1", "token-u2": "U2"}
    monkeypatch.setattr(auth.settings, "auth_enabled", True)
    monkeypatch.setattr(auth, "get_user_id_for_token", lambda token: tokens.get(token))
    with _build_client(engine, clock) as client:
        yield client


def test_missing_token_is_rejected(secured_client: TestClient, engine: DummyEngine):
    response = secured_client.post("/api/schedule/smart-optimize/U1", json={})

    assert response.status_code == 401
    assert engine.calls == []


def test_invalid_token_is_rejected(secured_client: TestClient):
    response = secured_client.get("/api/schedule/U1", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


def test_owner_token_is_accepted(secured_client: TestClient):
    response = secured_client.post(
        "/api/schedule/smart-optimize/U1",
        json={},
        headers={"Authorization": "Bearer token-u1"},
    )

    assert response.status_code == 200
    assert response.json()["isFirstTime"] is True


def test_other_users_schedule_is_forbidden(secured_client: TestClient, engine: DummyEngine):
    headers = {"Authorization": "Bearer token-u2"}

    optimize = secured_client.post("/api/schedule/smart-optimize/U1", json={}, headers=headers)
    read = secured_client.get("/api/schedule/U1", headers=headers)
    clear = secured_client.delete("/api/schedule/U1/cache", headers=headers)

    assert optimize.status_code == 403
    assert optimize.json()["errorCode"] == "forbidden"
    assert read.status_code == 403
    assert clear.status_code == 403
    assert engine.calls == []


def test_unconfigured_auth_backend_returns_503(engine: DummyEngine, clock: FrozenClock, monkeypatch: pytest.MonkeyPatch):
    from smart_schedule.api import auth

    def unavailable(token):
        raise RuntimeError("Supabase is not configured")

    monkeypatch.setattr(auth.settings, "auth_enabled", True)
    monkeypatch.setattr(auth, "get_user_id_for_token", unavailable)
    with _build_client(engine, clock) as client:
        response = client.get("/api/schedule/U1", headers={"Authorization": "Bearer token-u1"})

    assert response.status_code == 503
