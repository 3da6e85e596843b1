"""Domain types for smart schedule orchestration outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from ..schemas.schedule import OptimizedSchedule


@dataclass(slots=True, frozen=True)
class PriorSchedule:
    """A previously optimized schedule found in the cache (fresh or stale)."""

    schedule: OptimizedSchedule
    created_at: datetime


@dataclass(slots=True, frozen=True)
class NoPriorSchedule:
    """No schedule has been optimized for the user yet."""


PriorLookup = Union[PriorSchedule, NoPriorSchedule]


class EngineErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ENGINE_FAULT = "engine_fault"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed"


class FailureKind(str, Enum):
    VALIDATION = "validation_error"
    NO_CUSTOMERS = "no_customers"
    ENGINE_FAULT = "engine_fault"
    UNREACHABLE = "engine_unreachable"
    MALFORMED = "engine_malformed"
    FORBIDDEN = "forbidden"

    @property
    def retryable(self) -> bool:
        """Whether trying again later may succeed without the user changing anything."""
        return self in (FailureKind.ENGINE_FAULT, FailureKind.UNREACHABLE, FailureKind.MALFORMED)


ENGINE_FAILURES: dict[EngineErrorKind, FailureKind] = {
    EngineErrorKind.NOT_FOUND: FailureKind.NO_CUSTOMERS,
    EngineErrorKind.ENGINE_FAULT: FailureKind.ENGINE_FAULT,
    EngineErrorKind.UNREACHABLE: FailureKind.UNREACHABLE,
    EngineErrorKind.MALFORMED: FailureKind.MALFORMED,
}


class EngineError(Exception):
    """Raised by the engine client with a closed failure classification."""

    def __init__(self, kind: EngineErrorKind, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


@dataclass(slots=True)
class OptimizationSucceeded:
    schedule: OptimizedSchedule
    is_first_time: bool
    protected_dates: List[date] = field(default_factory=list)

    success = True


@dataclass(slots=True)
class OptimizationFailed:
    kind: FailureKind
    detail: str

    success = False

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


OptimizationOutcome = Union[OptimizationSucceeded, OptimizationFailed]
