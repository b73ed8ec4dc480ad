"""Derived revision status, recomputed from the current time and odometer."""

from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Optional, TYPE_CHECKING

from .status import Status

if TYPE_CHECKING:
    from .revision import RevisionRecord


class DerivedStatus(NamedTuple):
    """Result of the status derivation for one record."""

    status: Status
    remaining_days: Optional[int] = None
    remaining_km: Optional[float] = None


@dataclass
class ComputedRevision:
    """A revision record joined with its freshly derived status."""

    record: "RevisionRecord"
    status: Status
    current_odometer: Optional[float] = None
    remaining_days: Optional[int] = None
    remaining_km: Optional[float] = None

    @property
    def id(self) -> Optional[str]:
        return self.record.id

    @property
    def vehicle_plate(self) -> str:
        return self.record.vehicle_plate

    @property
    def is_due(self) -> bool:
        return self.status.is_alerting

    def to_dict(self) -> Dict[str, Any]:
        """Record fields plus the derived ones; status is the effective one."""
        d = self.record.to_dict()
        d["status"] = self.status.value
        d["currentOdometer"] = self.current_odometer
        d["remainingDays"] = self.remaining_days
        d["remainingKm"] = self.remaining_km
        return d
