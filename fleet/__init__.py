"""
Fleet revision tracking.

This package tracks scheduled revisions (oil changes, vignettes, technical
inspections, other documents) for a vehicle fleet:
- Status: Urgency levels (OVERDUE, DUE, PENDING, COMPLETED)
- RevisionRecord: A persisted revision with its due threshold
- FleetSnapshotEntry: A vehicle's odometer as reported by the tracker
- ComputedRevision: A record joined with its derived status
- RevisionAlert: Raised when a revision becomes due or overdue
- RevisionMonitor: Ties the stores, the live feed and the alert policy together
"""

from .status import Status
from .revision import RevisionRecord, RevisionType, RevisionMode
from .snapshot import FleetSnapshotEntry, build_snapshot_index, lookup_odometer
from .computed import ComputedRevision, DerivedStatus
from .calculations import (
    DUE_SOON_DAYS,
    DUE_SOON_KM,
    calc_next_due_date,
    calc_next_due_odometer,
    compute_revision,
    compute_revisions,
    derive_status,
)
from .alerts import AlertTracker, RevisionAlert, is_forward_transition
from .store import AlertStore, InvalidRecord, RecordNotFound, RevisionStore, StoreError
from .gpswox import ApiHashCache, FeedError, GPSwoxFeed
from .monitor import RefreshResult, RevisionMonitor
from .config import Config

__all__ = [
    "Status",
    "RevisionRecord",
    "RevisionType",
    "RevisionMode",
    "FleetSnapshotEntry",
    "build_snapshot_index",
    "lookup_odometer",
    "ComputedRevision",
    "DerivedStatus",
    "DUE_SOON_DAYS",
    "DUE_SOON_KM",
    "calc_next_due_date",
    "calc_next_due_odometer",
    "compute_revision",
    "compute_revisions",
    "derive_status",
    "AlertTracker",
    "RevisionAlert",
    "is_forward_transition",
    "AlertStore",
    "InvalidRecord",
    "RecordNotFound",
    "RevisionStore",
    "StoreError",
    "ApiHashCache",
    "FeedError",
    "GPSwoxFeed",
    "RefreshResult",
    "RevisionMonitor",
    "Config",
]
