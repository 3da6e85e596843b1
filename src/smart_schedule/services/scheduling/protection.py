"""Protection policy for dates a re-optimization must leave untouched."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from ...models.domain import PriorLookup, PriorSchedule


def protection_window(now: datetime) -> frozenset[date]:
    """Today and tomorrow as calendar dates in ``now``'s timezone."""
    today = now.date()
    return frozenset({today, today + timedelta(days=1)})


def protected_dates(now: datetime, prior: PriorLookup) -> frozenset[date]:
    """Dates to keep from the prior schedule; empty for a first-time user.

    ``now`` must already be expressed in the schedule's working timezone.
    """
    if isinstance(prior, PriorSchedule):
        return protection_window(now)
    return frozenset()
