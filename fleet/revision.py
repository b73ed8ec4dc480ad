"""RevisionRecord class for scheduled maintenance and compliance tasks."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from .status import Status


class RevisionType(Enum):
    """What kind of task the revision tracks."""

    OIL_CHANGE = "oil_change"
    VIGNETTE = "vignette"
    TECHNICAL_INSPECTION = "technical_inspection"
    OTHER_DOCUMENT = "other_document"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class RevisionMode(Enum):
    """Which threshold decides when the revision is due."""

    BY_TIME = "by_time"
    BY_DISTANCE = "by_distance"


# attribute name -> serialized (camelCase) key
FIELD_KEYS = {
    "id": "id",
    "vehicle_plate": "vehiclePlate",
    "vehicle_id": "vehicleId",
    "type": "type",
    "mode": "mode",
    "interval_days": "intervalDays",
    "interval_km": "intervalKm",
    "last_date": "lastDate",
    "last_odometer": "lastOdometer",
    "next_due_date": "nextDueDate",
    "next_due_odometer": "nextDueOdometer",
    "status": "status",
    "cost": "cost",
    "notes": "notes",
    "file_url": "fileUrl",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

_ENUM_FIELDS = {"type": RevisionType, "mode": RevisionMode, "status": Status}
_REQUIRED_KEYS = ("vehiclePlate", "type", "mode")


def _as_text(value: Any) -> Any:
    """Dates loaded from hand-edited YAML come back as date objects."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class RevisionRecord:
    """A scheduled revision for one vehicle."""

    def __init__(
            self,
            id: Optional[str],
            vehicle_plate: str,
            type: RevisionType,
            mode: RevisionMode,
            interval_days: Optional[int] = None,
            interval_km: Optional[int] = None,
            last_date: Optional[str] = None,
            last_odometer: Optional[float] = None,
            next_due_date: Optional[str] = None,
            next_due_odometer: Optional[float] = None,
            status: Status = Status.PENDING,
            cost: Optional[float] = None,
            notes: Optional[str] = None,
            file_url: Optional[str] = None,
            vehicle_id: Optional[str] = None,
            created_at: Optional[str] = None,
            updated_at: Optional[str] = None,
    ):
        self.id = id
        self.vehicle_plate = vehicle_plate
        self.vehicle_id = vehicle_id
        self.type = type
        self.mode = mode
        self.interval_days = interval_days
        self.interval_km = interval_km
        self.last_date = last_date
        self.last_odometer = last_odometer
        self.next_due_date = next_due_date
        self.next_due_odometer = next_due_odometer
        self.status = status or Status.PENDING
        self.cost = cost
        self.notes = notes
        self.file_url = file_url
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_completed(self) -> bool:
        return self.status == Status.COMPLETED

    @property
    def display_name(self) -> str:
        """Human-readable name, e.g. 'Oil change - AB-123-CD'."""
        return f"{self.type.label} - {self.vehicle_plate}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevisionRecord":
        """
        Build a record from its serialized (camelCase) form.

        Raises ValueError for unknown enumeration values and KeyError when
        vehiclePlate, type or mode is missing.
        """
        for key in _REQUIRED_KEYS:
            if data.get(key) is None:
                raise KeyError(key)
        kwargs: Dict[str, Any] = {}
        for attr, key in FIELD_KEYS.items():
            if key not in data:
                continue
            value = _as_text(data[key])
            if attr in _ENUM_FIELDS and value is not None:
                value = _ENUM_FIELDS[attr](value)
            kwargs[attr] = value
        kwargs.setdefault("id", None)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase dict format, omitting None values."""
        d: Dict[str, Any] = {}
        for attr, key in FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            d[key] = value
        return d

    def __repr__(self) -> str:
        return (
            f"RevisionRecord(id={self.id!r}, plate={self.vehicle_plate!r}, "
            f"type={self.type.value}, mode={self.mode.value}, "
            f"status={self.status.value})"
        )
