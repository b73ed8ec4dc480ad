"""YAML-backed record stores for revisions and alerts."""

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from jsonschema import ValidationError, validate

from .alerts import RevisionAlert
from .calculations import (
    calc_next_due_date,
    calc_next_due_odometer,
    to_utc,
    utcnow,
)
from .revision import RevisionMode, RevisionRecord
from .status import Status

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"

# Keys that drive the next-due threshold
_THRESHOLD_INPUTS = {"mode", "intervalDays", "intervalKm", "lastDate", "lastOdometer"}
_READ_ONLY = {"id", "createdAt", "updatedAt"}


class StoreError(Exception):
    """Any failure reading or writing a store."""


class RecordNotFound(StoreError):
    """No record with the requested id."""


class InvalidRecord(StoreError):
    """The record was rejected on write."""


_schema: Optional[Dict[str, Any]] = None


def load_schema() -> Dict[str, Any]:
    """Load the JSON schema from schema.yaml (cached)."""
    global _schema
    if _schema is None:
        with open(SCHEMA_PATH) as f:
            _schema = yaml.safe_load(f)
    return _schema


def validate_item(data: Dict[str, Any], definition: str) -> None:
    """Validate one item against a named definition, raising InvalidRecord."""
    schema = load_schema()
    item_schema = {
        "$schema": schema.get("$schema"),
        "$defs": schema["$defs"],
        "$ref": f"#/$defs/{definition}",
    }
    try:
        validate(instance=data, schema=item_schema)
    except ValidationError as e:
        where = ".".join(str(p) for p in e.path)
        message = f"{e.message} (at {where})" if where else e.message
        raise InvalidRecord(message) from e


def _iso_now(clock: Callable[[], Any]) -> str:
    return to_utc(clock()).isoformat()


class _YamlStore:
    """Loads and writes one list under a top-level key of a YAML file."""

    key = ""

    def __init__(self, filename: Union[str, Path], clock: Callable[[], Any] = utcnow):
        self.filename = Path(filename)
        self.clock = clock

    def _load_document(self) -> Dict[str, Any]:
        if not self.filename.exists():
            return {}
        try:
            with open(self.filename, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot read {self.filename}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{self.filename} is not a mapping")
        return data

    def _load(self) -> List[Dict[str, Any]]:
        items = self._load_document().get(self.key) or []
        if not isinstance(items, list):
            raise StoreError(f"'{self.key}' in {self.filename} is not a list")
        for item in items:
            if not isinstance(item, dict):
                raise StoreError(f"Corrupt entry in '{self.key}' of {self.filename}: {item!r}")
        return items

    def _write(self, items: Any, key: Optional[str] = None) -> None:
        """Replace one top-level key, keeping the rest of the file."""
        data = self._load_document()
        data[key or self.key] = items
        try:
            self.filename.parent.mkdir(parents=True, exist_ok=True)
            with open(self.filename, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except OSError as e:
            raise StoreError(f"Cannot write {self.filename}: {e}") from e

    @staticmethod
    def _find(items: List[Dict[str, Any]], item_id: str) -> int:
        for i, item in enumerate(items):
            if item.get("id") == item_id:
                return i
        raise RecordNotFound(f"No record with id '{item_id}'")


def fill_thresholds(record: RevisionRecord) -> RevisionRecord:
    """Set the next-due threshold of the record's mode from last + interval."""
    if record.mode == RevisionMode.BY_TIME:
        due = calc_next_due_date(record.last_date, record.interval_days)
        if due is not None:
            record.next_due_date = due
    else:
        due_km = calc_next_due_odometer(record.last_odometer, record.interval_km)
        if due_km is not None:
            record.next_due_odometer = due_km
    return record


def _to_record(data: Dict[str, Any], recompute: bool) -> RevisionRecord:
    validate_item(data, "revision")
    try:
        record = RevisionRecord.from_dict(data)
        if recompute:
            fill_thresholds(record)
        for value in (record.last_date, record.next_due_date):
            if value is not None:
                to_utc(value)
    except (KeyError, ValueError, OverflowError) as e:
        raise InvalidRecord(f"Invalid revision: {e}") from e
    return record


class RevisionStore(_YamlStore):
    """
    Revision records kept in a YAML file under the 'revisions' key.

    Writes are validated against the schema; invalid type, mode or status
    values are rejected with InvalidRecord.
    """

    key = "revisions"

    def _from_item(self, item: Dict[str, Any]) -> RevisionRecord:
        try:
            return RevisionRecord.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Corrupt revision in {self.filename}: {e}") from e

    def list(self) -> List[RevisionRecord]:
        """All records, most recently updated first."""
        records = [self._from_item(item) for item in self._load()]
        records.sort(key=lambda r: r.updated_at or "", reverse=True)
        return records

    def get(self, revision_id: str) -> RevisionRecord:
        items = self._load()
        return self._from_item(items[self._find(items, revision_id)])

    def create(self, partial: Dict[str, Any]) -> RevisionRecord:
        """
        Create a record from its camelCase fields.

        Assigns id and timestamps, defaults status to pending and fills the
        next-due threshold from last + interval unless one is given.
        """
        now = _iso_now(self.clock)
        data = {k: v for k, v in partial.items() if v is not None and k not in _READ_ONLY}
        data["id"] = uuid.uuid4().hex
        data.setdefault("status", Status.PENDING.value)
        data["createdAt"] = now
        data["updatedAt"] = now
        recompute = "nextDueDate" not in data and "nextDueOdometer" not in data
        record = _to_record(data, recompute)

        items = self._load()
        items.append(record.to_dict())
        self._write(items)
        logger.info("Created revision %s for %s", record.id, record.vehicle_plate)
        return record

    def update(self, revision_id: str, partial: Dict[str, Any]) -> RevisionRecord:
        """
        Apply changed fields to a record. A None value clears the field.

        The threshold is recomputed when last/interval/mode change and no
        threshold is given explicitly.
        """
        items = self._load()
        index = self._find(items, revision_id)
        data = self._from_item(items[index]).to_dict()
        for key, value in partial.items():
            if key in _READ_ONLY:
                continue
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        data["updatedAt"] = _iso_now(self.clock)
        changed = set(partial)
        recompute = bool(changed & _THRESHOLD_INPUTS) and not (
            changed & {"nextDueDate", "nextDueOdometer"}
        )
        record = _to_record(data, recompute)

        items[index] = record.to_dict()
        self._write(items)
        logger.info("Updated revision %s (%s)", revision_id, ", ".join(sorted(changed)))
        return record

    def complete(self, revision_id: str) -> RevisionRecord:
        """Mark a revision completed. Completion is sticky."""
        return self.update(revision_id, {"status": Status.COMPLETED.value})

    def delete(self, revision_id: str) -> None:
        items = self._load()
        del items[self._find(items, revision_id)]
        self._write(items)
        logger.info("Deleted revision %s", revision_id)


class AlertStore(_YamlStore):
    """Append-only alerts kept in a YAML file under the 'alerts' key."""

    key = "alerts"

    def list(self, include_acknowledged: bool = True) -> List[RevisionAlert]:
        """Alerts, newest first."""
        try:
            alerts = [RevisionAlert.from_dict(item) for item in self._load()]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Corrupt alert in {self.filename}: {e}") from e
        if not include_acknowledged:
            alerts = [a for a in alerts if not a.ack]
        alerts.sort(key=lambda a: a.triggered_at, reverse=True)
        return alerts

    def create(self, alert: RevisionAlert) -> RevisionAlert:
        alert.id = uuid.uuid4().hex
        data = alert.to_dict()
        validate_item(data, "alert")

        items = self._load()
        items.append(data)
        self._write(items)
        logger.info("Raised %s alert %s for %s", alert.status.value, alert.id, alert.vehicle_plate)
        return alert

    def acknowledge(self, alert_id: str, ack: bool = True) -> RevisionAlert:
        items = self._load()
        index = self._find(items, alert_id)
        items[index]["ack"] = bool(ack)
        self._write(items)
        return RevisionAlert.from_dict(items[index])

    def observations(self) -> Dict[str, Dict[str, Any]]:
        """Last observed status per revision id, saved under 'observed'."""
        data = self._load_document().get("observed") or {}
        if not isinstance(data, dict):
            raise StoreError(f"'observed' in {self.filename} is not a mapping")
        try:
            validate_item(data, "observed")
        except InvalidRecord as e:
            raise StoreError(f"Corrupt observations in {self.filename}: {e}") from e
        return data

    def save_observations(self, observations: Dict[str, Dict[str, Any]]) -> None:
        validate_item(observations, "observed")
        self._write(observations, key="observed")
        logger.debug("Saved %d observations to %s", len(observations), self.filename)
