"""Alert records and the emission policy for forward status transitions."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .calculations import DateLike, to_utc, utcnow
from .computed import ComputedRevision
from .revision import RevisionMode, RevisionType
from .status import Status

logger = logging.getLogger(__name__)

ALERT_KEYS = {
    "id": "id",
    "revision_id": "revisionId",
    "vehicle_plate": "vehiclePlate",
    "type": "type",
    "mode": "mode",
    "status": "status",
    "message": "message",
    "triggered_at": "triggeredAt",
    "alert_date": "alertDate",
    "ack": "ack",
}


class RevisionAlert:
    """An append-only alert raised when a revision became due or overdue."""

    def __init__(
            self,
            revision_id: str,
            vehicle_plate: str,
            type: RevisionType,
            mode: RevisionMode,
            status: Status,
            message: str,
            triggered_at: str,
            alert_date: str,
            ack: bool = False,
            id: Optional[str] = None,
    ):
        self.id = id
        self.revision_id = revision_id
        self.vehicle_plate = vehicle_plate
        self.type = type
        self.mode = mode
        self.status = status
        self.message = message
        self.triggered_at = triggered_at
        self.alert_date = alert_date
        self.ack = bool(ack)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevisionAlert":
        return cls(
            revision_id=data["revisionId"],
            vehicle_plate=data["vehiclePlate"],
            type=RevisionType(data["type"]),
            mode=RevisionMode(data["mode"]),
            status=Status(data["status"]),
            message=data.get("message", ""),
            triggered_at=str(data["triggeredAt"]),
            alert_date=str(data["alertDate"]),
            ack=data.get("ack", False),
            id=data.get("id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        for attr, key in ALERT_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if hasattr(value, "value"):
                value = value.value
            d[key] = value
        return d


def is_forward_transition(previous: Optional[Status], current: Status) -> bool:
    """
    True for pending->due, due->overdue and pending->overdue.

    Completed is outside the urgency ladder and never counts as a start or
    end of a forward transition. An unknown previous status is pending.
    """
    if not current.is_alerting:
        return False
    if previous is None:
        previous = Status.PENDING
    if previous == Status.COMPLETED:
        return False
    return current.rank < previous.rank


def format_alert_message(computed: ComputedRevision) -> str:
    """Human-readable alert text."""
    record = computed.record
    name = record.display_name
    if computed.status == Status.OVERDUE:
        if computed.remaining_km is not None:
            return f"{name} is overdue by {abs(computed.remaining_km):,.0f} km"
        if computed.remaining_days == 0:
            return f"{name} is overdue today"
        if computed.remaining_days is not None:
            return f"{name} is overdue by {abs(computed.remaining_days)} day(s)"
        return f"{name} is overdue"
    if computed.remaining_km is not None:
        return f"{name} is due in {computed.remaining_km:,.0f} km"
    if computed.remaining_days == 0:
        return f"{name} is due today"
    if computed.remaining_days is not None:
        return f"{name} is due in {computed.remaining_days} day(s)"
    return f"{name} is due"


def build_alert(computed: ComputedRevision, now: DateLike) -> RevisionAlert:
    """Create an (unsaved) alert for a computed revision."""
    now_utc = to_utc(now)
    record = computed.record
    if record.mode == RevisionMode.BY_TIME and record.next_due_date:
        alert_date = to_utc(record.next_due_date).date().isoformat()
    else:
        alert_date = now_utc.date().isoformat()
    return RevisionAlert(
        revision_id=record.id,
        vehicle_plate=record.vehicle_plate,
        type=record.type,
        mode=record.mode,
        status=computed.status,
        message=format_alert_message(computed),
        triggered_at=now_utc.isoformat(),
        alert_date=alert_date,
    )


def observed_threshold(record) -> Any:
    """The next-due threshold the record's status is derived from."""
    if record.mode == RevisionMode.BY_TIME:
        return record.next_due_date
    return record.next_due_odometer


class AlertTracker:
    """
    Remembers the last observed status of each revision and decides which
    observations deserve a new alert.

    On first sight of a record, its persisted status is the previous one.
    A record whose threshold moved since the last observation counts as
    seen for the first time.
    """

    def __init__(self):
        self._observed: Dict[str, Status] = {}
        self._thresholds: Dict[str, Any] = {}

    def last_observed(self, revision_id: str) -> Optional[Status]:
        return self._observed.get(revision_id)

    def prime(self, alerts: Iterable[RevisionAlert]) -> None:
        """Seed from persisted alerts; the most recent alert per revision wins."""
        for alert in sorted(alerts, key=lambda a: a.triggered_at):
            self._observed[alert.revision_id] = alert.status

    def restore(self, observations: Dict[str, Dict[str, Any]]) -> None:
        """Seed from saved observations, as returned by `observations()`."""
        for rev_id, entry in observations.items():
            self._observed[rev_id] = Status(entry["status"])
            if "threshold" in entry:
                self._thresholds[rev_id] = entry["threshold"]

    def observations(self) -> Dict[str, Dict[str, Any]]:
        """Last observed status and threshold per revision, for persisting."""
        result = {}
        for rev_id, status in self._observed.items():
            entry: Dict[str, Any] = {"status": status.value}
            if rev_id in self._thresholds:
                entry["threshold"] = self._thresholds[rev_id]
            result[rev_id] = entry
        return result

    def _previous(self, record) -> Status:
        observed = self._observed.get(record.id)
        if observed is None:
            return record.status
        if record.id in self._thresholds and (
            self._thresholds[record.id] != observed_threshold(record)
        ):
            return record.status
        return observed

    def observe(
        self, computed: Iterable[ComputedRevision], now: Optional[DateLike] = None
    ) -> List[RevisionAlert]:
        """Record this pass's statuses and return alerts for forward transitions."""
        now = now if now is not None else utcnow()
        emitted = []
        seen = set()
        for comp in computed:
            rev_id = comp.record.id
            seen.add(rev_id)
            previous = self._previous(comp.record)
            if is_forward_transition(previous, comp.status):
                logger.info(
                    "Revision %s on %s moved %s -> %s",
                    rev_id,
                    comp.record.vehicle_plate,
                    previous.value,
                    comp.status.value,
                )
                emitted.append(build_alert(comp, now))
            self._observed[rev_id] = comp.status
            self._thresholds[rev_id] = observed_threshold(comp.record)
        # Forget deleted records
        for rev_id in list(self._observed):
            if rev_id not in seen:
                del self._observed[rev_id]
                self._thresholds.pop(rev_id, None)
        return emitted
