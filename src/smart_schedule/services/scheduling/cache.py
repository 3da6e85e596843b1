"""Time-bounded in-memory cache of the last optimized schedule per user."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from ...models.domain import NoPriorSchedule, PriorLookup, PriorSchedule
from ...schemas.schedule import OptimizedSchedule

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class CacheEntry:
    schedule: OptimizedSchedule
    created_at: datetime


class ScheduleCache:
    """Per-user schedule store with TTL-based staleness.

    Expired entries are kept so callers can still find the last known
    schedule through :meth:`lookup`; :meth:`get` only serves fresh ones.
    Schedules are copied on the way in and on the way out, so a reader never
    shares state with the writer or with other readers.
    """

    def __init__(self, ttl: timedelta | float, clock: Clock | None = None) -> None:
        self.ttl = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
        self._clock = clock or utc_now
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def _is_expired(self, entry: CacheEntry, now: datetime) -> bool:
        return now - entry.created_at > self.ttl

    def get(self, user_id: str) -> Optional[OptimizedSchedule]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                logger.debug(f"Schedule cache miss for user {user_id}")
                return None
            if self._is_expired(entry, self._clock()):
                logger.debug(f"Schedule cache entry for user {user_id} is stale")
                return None
            logger.debug(f"Schedule cache hit for user {user_id}")
            return entry.schedule.model_copy(deep=True)

    def lookup(self, user_id: str) -> PriorLookup:
        """Return the last known schedule regardless of freshness."""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return NoPriorSchedule()
            return PriorSchedule(schedule=entry.schedule.model_copy(deep=True), created_at=entry.created_at)

    def put(self, user_id: str, schedule: OptimizedSchedule) -> None:
        entry = CacheEntry(schedule=schedule.model_copy(deep=True), created_at=self._clock())
        with self._lock:
            self._entries[user_id] = entry
        logger.debug(f"Cached schedule for user {user_id} ({len(schedule.schedule)} days)")

    def clear(self, user_id: str) -> bool:
        with self._lock:
            removed = self._entries.pop(user_id, None) is not None
        if removed:
            logger.info(f"Schedule cache cleared for user {user_id}")
        return removed

    def is_fresh(self, user_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(user_id)
            return entry is not None and not self._is_expired(entry, self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
