"""Fleet snapshot entries and the plate -> odometer index."""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional


@dataclass
class FleetSnapshotEntry:
    """One vehicle as reported by the tracking server at poll time."""

    plate: str
    odometer_km: Optional[float] = None
    device_id: Optional[str] = None
    online: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    speed: Optional[float] = None
    timestamp: Optional[str] = None


def build_snapshot_index(
    entries: Iterable[FleetSnapshotEntry],
) -> Dict[str, Optional[float]]:
    """Map plate to odometer. For duplicated plates the last entry wins."""
    index: Dict[str, Optional[float]] = {}
    for entry in entries:
        index[entry.plate] = entry.odometer_km
    return index


def lookup_odometer(
    index: Dict[str, Optional[float]], plate: str
) -> Optional[float]:
    """Current odometer for a plate, None when unknown."""
    return index.get(plate)
