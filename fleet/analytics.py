"""Summary figures over computed revisions."""

from collections import Counter
from typing import Dict, Iterable, List, Tuple

from .calculations import to_utc
from .computed import ComputedRevision
from .status import Status


def status_counts(revisions: Iterable[ComputedRevision]) -> Dict[str, int]:
    """Count revisions per effective status; every status is present."""
    counts = Counter(r.status for r in revisions)
    return {status.value: counts.get(status, 0) for status in Status}


def cost_by_vehicle(
    revisions: Iterable[ComputedRevision], limit: int = 10
) -> List[Tuple[str, float]]:
    """Total cost per plate, most expensive first."""
    totals: Dict[str, float] = {}
    for rev in revisions:
        plate = rev.vehicle_plate or "Unknown"
        totals[plate] = totals.get(plate, 0) + (rev.record.cost or 0)
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


def monthly_cost(revisions: Iterable[ComputedRevision]) -> List[Tuple[str, float]]:
    """
    Total cost per month, oldest first.

    A revision counts in the month it was last serviced, else the month it
    was created. Revisions with neither date are skipped.
    """
    totals: Dict[str, float] = {}
    for rev in revisions:
        when = rev.record.last_date or rev.record.created_at
        if not when:
            continue
        key = to_utc(when).strftime("%Y-%m")
        totals[key] = totals.get(key, 0) + (rev.record.cost or 0)
    return sorted(totals.items())


def total_cost(revisions: Iterable[ComputedRevision]) -> float:
    return sum(r.record.cost or 0 for r in revisions)
