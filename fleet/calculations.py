"""Helper functions for revision due calculations."""

import math
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Union

from dateutil.parser import isoparse

from .computed import ComputedRevision, DerivedStatus
from .revision import RevisionMode, RevisionRecord
from .snapshot import lookup_odometer
from .status import Status

# Fixed policy thresholds, inclusive.
DUE_SOON_DAYS = 7
DUE_SOON_KM = 200

SECONDS_PER_DAY = 86400

DateLike = Union[str, date, datetime]


def to_utc(value: DateLike) -> datetime:
    """
    Normalize a date or timestamp to an aware UTC datetime.

    Date-only values mean midnight UTC; naive datetimes are taken as UTC.
    """
    if isinstance(value, str):
        value = isoparse(value)
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calc_next_due_date(
    last_date: Optional[DateLike], interval_days: Optional[int]
) -> Optional[str]:
    """Calculate next due date: last + interval days, as an ISO date."""
    if last_date is None or not interval_days:
        return None
    if isinstance(last_date, str):
        last_date = isoparse(last_date)
    if isinstance(last_date, datetime):
        last_date = last_date.date()
    return (last_date + timedelta(days=int(interval_days))).isoformat()


def calc_next_due_odometer(
    last_odometer: Optional[float], interval_km: Optional[int]
) -> Optional[float]:
    """Calculate next due odometer: last + interval km."""
    if last_odometer is None or not interval_km:
        return None
    return last_odometer + interval_km


def _derive_by_time(next_due: Optional[datetime], now: datetime) -> DerivedStatus:
    if next_due is None:
        return DerivedStatus(Status.PENDING)
    remaining_days = math.ceil((next_due - now).total_seconds() / SECONDS_PER_DAY)
    # Strict: a threshold equal to now is not yet overdue.
    if next_due < now:
        return DerivedStatus(Status.OVERDUE, remaining_days=remaining_days)
    if remaining_days <= DUE_SOON_DAYS:
        return DerivedStatus(Status.DUE, remaining_days=remaining_days)
    return DerivedStatus(Status.PENDING, remaining_days=remaining_days)


@lru_cache(maxsize=4096, typed=True)
def _derive_by_distance(
    next_due_odometer: Optional[float], current_odometer: Optional[float]
) -> DerivedStatus:
    if next_due_odometer is None or current_odometer is None:
        return DerivedStatus(Status.PENDING)
    remaining_km = next_due_odometer - current_odometer
    # remaining_km == 0 is due, not overdue.
    if remaining_km < 0:
        return DerivedStatus(Status.OVERDUE, remaining_km=remaining_km)
    if remaining_km <= DUE_SOON_KM:
        return DerivedStatus(Status.DUE, remaining_km=remaining_km)
    return DerivedStatus(Status.PENDING, remaining_km=remaining_km)


def derive_status(
    record: RevisionRecord,
    current_odometer: Optional[float],
    now: Optional[DateLike] = None,
) -> DerivedStatus:
    """
    Derive the effective status of a revision.

    Logic:
    - completed records stay completed
    - by_time: overdue once the due date has passed, due within 7 days
    - by_distance: overdue below zero km remaining, due within 200 km
    - missing threshold or odometer: pending

    Distance results do not depend on `now` and are memoised on the two
    odometer values.
    """
    if record.status == Status.COMPLETED:
        return DerivedStatus(Status.COMPLETED)
    if record.mode == RevisionMode.BY_TIME:
        now_utc = to_utc(now) if now is not None else utcnow()
        next_due = to_utc(record.next_due_date) if record.next_due_date else None
        return _derive_by_time(next_due, now_utc)
    return _derive_by_distance(record.next_due_odometer, current_odometer)


def compute_revision(
    record: RevisionRecord,
    index: Dict[str, Optional[float]],
    now: Optional[DateLike] = None,
) -> ComputedRevision:
    """Join a record with its vehicle's odometer and derive its status."""
    current = lookup_odometer(index, record.vehicle_plate)
    derived = derive_status(record, current, now)
    return ComputedRevision(
        record=record,
        status=derived.status,
        current_odometer=current,
        remaining_days=derived.remaining_days,
        remaining_km=derived.remaining_km,
    )


def compute_revisions(
    records: Iterable[RevisionRecord],
    index: Dict[str, Optional[float]],
    now: Optional[DateLike] = None,
) -> List[ComputedRevision]:
    """Compute status for every record against one snapshot and instant."""
    now_utc = to_utc(now) if now is not None else utcnow()
    return [compute_revision(r, index, now_utc) for r in records]
