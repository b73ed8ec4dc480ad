"""Reconciles stored revisions with the live fleet and raises alerts."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .alerts import AlertTracker, RevisionAlert
from .calculations import DateLike, compute_revisions, to_utc, utcnow
from .computed import ComputedRevision
from .gpswox import FeedError
from .snapshot import build_snapshot_index
from .store import AlertStore, RevisionStore

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one reconciliation pass."""

    revisions: List[ComputedRevision]
    alerts: List[RevisionAlert] = field(default_factory=list)
    snapshot_available: bool = False


class RevisionMonitor:
    """
    Joins revision records with the latest fleet snapshot.

    The feed is optional. Without one, or when a poll fails, every
    distance-based revision has an unknown odometer. Each poll replaces the
    previous snapshot, so the latest poll always wins.
    """

    def __init__(
        self,
        store: RevisionStore,
        alert_store: AlertStore,
        feed=None,
        tracker: Optional[AlertTracker] = None,
    ):
        self.store = store
        self.alert_store = alert_store
        self.feed = feed
        self.tracker = tracker
        self.index: Dict[str, Optional[float]] = {}
        self.snapshot_at: Optional[datetime] = None
        self._saved_observations: Optional[Dict[str, Dict[str, Any]]] = None

    def _ensure_tracker(self) -> AlertTracker:
        """Load the tracker from the alert store on first use."""
        if self.tracker is None:
            self.tracker = AlertTracker()
            # Saved observations take precedence over alert history
            self.tracker.prime(self.alert_store.list())
            saved = self.alert_store.observations()
            self.tracker.restore(saved)
            self._saved_observations = saved
        return self.tracker

    def _save_observations(self, tracker: AlertTracker) -> None:
        observations = tracker.observations()
        if observations != self._saved_observations:
            self.alert_store.save_observations(observations)
            self._saved_observations = observations

    def poll_snapshot(self) -> bool:
        """Poll the feed. Returns False when no snapshot is available."""
        if self.feed is None:
            self.index = {}
            self.snapshot_at = None
            return False
        try:
            entries = self.feed.poll()
        except FeedError as e:
            logger.warning("Fleet snapshot unavailable: %s", e)
            self.index = {}
            self.snapshot_at = None
            return False
        self.index = build_snapshot_index(entries)
        self.snapshot_at = utcnow()
        logger.info("Fleet snapshot: %d vehicles", len(self.index))
        return True

    def compute(self, now: Optional[DateLike] = None) -> List[ComputedRevision]:
        """Derive every stored revision against the current snapshot."""
        now = to_utc(now) if now is not None else utcnow()
        return compute_revisions(self.store.list(), self.index, now)

    def refresh(self, now: Optional[DateLike] = None) -> RefreshResult:
        """Poll, derive, persist alerts for forward transitions and the statuses seen."""
        now = to_utc(now) if now is not None else utcnow()
        available = self.poll_snapshot()
        computed = self.compute(now)
        tracker = self._ensure_tracker()
        alerts = [self.alert_store.create(a) for a in tracker.observe(computed, now)]
        self._save_observations(tracker)
        return RefreshResult(revisions=computed, alerts=alerts, snapshot_available=available)

    def watch(
        self,
        interval: float,
        iterations: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_refresh: Optional[Callable[[RefreshResult], None]] = None,
    ) -> None:
        """Refresh every `interval` seconds, forever or `iterations` times."""
        count = 0
        while iterations is None or count < iterations:
            result = self.refresh()
            if on_refresh is not None:
                on_refresh(result)
            count += 1
            if iterations is None or count < iterations:
                sleep(interval)
