"""HTTP client for the external schedule optimization engine."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Iterable

import httpx
from pydantic import ValidationError

from ...config import settings
from ...models.domain import EngineError, EngineErrorKind
from ...schemas.schedule import OptimizedSchedule, StartLocation, WorkSchedule

HEALTH_CHECK_TIMEOUT_SECONDS = 5.0

logger = logging.getLogger(__name__)


class OptimizationEngineClient:
    """Builds engine requests and classifies every failure into an ``EngineErrorKind``.

    The client never retries; retry policy belongs to the orchestrator.
    """

    def __init__(
        self,
        base_url: str | None = None,
        optimize_path: str | None = None,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        forward_protected_dates: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.engine_base_url
        if not self.base_url:
            raise ValueError("Optimization engine base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.optimize_path = optimize_path or settings.engine_optimize_path
        self.timeout = timeout if timeout is not None else settings.engine_timeout_seconds
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.engine_connect_timeout_seconds
        )
        self.forward_protected_dates = (
            forward_protected_dates
            if forward_protected_dates is not None
            else settings.engine_supports_protected_dates
        )
        self._transport = transport

    def _get_client(self, timeout: float | None = None) -> httpx.AsyncClient:
        request_timeout = timeout if timeout is not None else self.timeout
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(request_timeout, connect=min(self.connect_timeout, request_timeout)),
            transport=self._transport,
        )

    def build_payload(
        self,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
        protected_dates: Iterable[date] = (),
    ) -> dict:
        payload = {
            "work_schedule": work_schedule.model_dump(),
            "cleaner_start_location": start_location.model_dump(),
        }
        if self.forward_protected_dates:
            payload["protected_dates"] = sorted(day.isoformat() for day in protected_dates)
        return payload

    async def optimize(
        self,
        user_id: str,
        work_schedule: WorkSchedule,
        start_location: StartLocation,
        protected_dates: Iterable[date] = (),
    ) -> OptimizedSchedule:
        """Request a fresh multi-day schedule for ``user_id``."""
        path = self.optimize_path.format(user_id=user_id)
        payload = self.build_payload(work_schedule, start_location, protected_dates)

        async with self._get_client() as client:
            try:
                # httpx timeouts apply per read; the engine call as a whole is capped here.
                response = await asyncio.wait_for(client.post(path, json=payload), self.timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                raise EngineError(
                    EngineErrorKind.UNREACHABLE,
                    f"Optimization engine timed out after {self.timeout:g}s",
                ) from exc
            except httpx.TransportError as exc:
                raise EngineError(
                    EngineErrorKind.UNREACHABLE,
                    f"Unable to connect to optimization engine at {self.base_url}: {exc}",
                ) from exc
            except httpx.DecodingError as exc:
                raise EngineError(
                    EngineErrorKind.MALFORMED,
                    f"Optimization engine response body could not be decoded: {exc}",
                ) from exc
            except httpx.HTTPError as exc:
                raise EngineError(
                    EngineErrorKind.ENGINE_FAULT,
                    f"Optimization engine request failed: {exc}",
                ) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise EngineError(
                EngineErrorKind.NOT_FOUND,
                f"No customers found for user {user_id}",
                status_code=response.status_code,
            )
        if response.is_error:
            raise EngineError(
                EngineErrorKind.ENGINE_FAULT,
                f"Optimization engine returned HTTP {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise EngineError(
                EngineErrorKind.MALFORMED,
                "Optimization engine response is not valid JSON",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise EngineError(
                EngineErrorKind.MALFORMED,
                f"Optimization engine response must be an object, got {type(body).__name__}",
                status_code=response.status_code,
            )

        try:
            schedule = OptimizedSchedule.model_validate(body)
        except ValidationError as exc:
            raise EngineError(
                EngineErrorKind.MALFORMED,
                f"Optimization engine response does not match the schedule contract: {exc}",
                status_code=response.status_code,
            ) from exc

        if schedule.work_schedule is None:
            schedule.work_schedule = work_schedule
        if schedule.user_id is None:
            schedule.user_id = user_id
        return schedule

    async def check_health(self) -> bool:
        """Return True when the engine answers its health endpoint."""
        try:
            async with self._get_client(timeout=HEALTH_CHECK_TIMEOUT_SECONDS) as client:
                response = await client.get("/health")
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning(f"Optimization engine health check failed: {exc}")
            return False


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return str(body)[:200]
