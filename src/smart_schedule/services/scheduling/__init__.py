"""Smart schedule orchestration services."""

from .cache import ScheduleCache
from .engine_client import OptimizationEngineClient
from .gateway import SmartScheduleGateway
from .metrics import extract_metrics
from .orchestrator import SmartScheduleOrchestrator
from .protection import protected_dates

__all__ = [
    "ScheduleCache",
    "OptimizationEngineClient",
    "SmartScheduleGateway",
    "SmartScheduleOrchestrator",
    "extract_metrics",
    "protected_dates",
]
