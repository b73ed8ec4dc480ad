#!/usr/bin/env python3
"""
Tests for the status derivation engine.

Boundary rules:
1. Completed is sticky
2. by_time: overdue only strictly after the due instant, due within 7 days
3. by_distance: overdue only below zero km, due within 200 km
4. Missing threshold or odometer is pending, not an error

The two modes deliberately keep different edges at zero: a due date equal
to now is not overdue, and 0 km remaining is due, not overdue.
"""
from datetime import datetime, timedelta, timezone

import pytest

from fleet import (
    DUE_SOON_DAYS,
    DUE_SOON_KM,
    RevisionMode,
    RevisionRecord,
    RevisionType,
    Status,
    calc_next_due_date,
    calc_next_due_odometer,
    compute_revision,
    compute_revisions,
    derive_status,
)

UTC = timezone.utc
NOW = datetime(2025, 1, 1, tzinfo=UTC)


def time_record(next_due_date=None, status=Status.PENDING):
    return RevisionRecord(
        "t1", "AB-123-CD", RevisionType.VIGNETTE, RevisionMode.BY_TIME,
        interval_days=365, next_due_date=next_due_date, status=status,
    )


def distance_record(next_due_odometer=None, status=Status.PENDING):
    return RevisionRecord(
        "d1", "AB-123-CD", RevisionType.OIL_CHANGE, RevisionMode.BY_DISTANCE,
        interval_km=10000, next_due_odometer=next_due_odometer, status=status,
    )


class TestPolicyConstants:
    def test_thresholds(self):
        assert DUE_SOON_DAYS == 7
        assert DUE_SOON_KM == 200


class TestCompletedIsSticky:
    """Completed records ignore time and odometer."""

    @pytest.mark.parametrize(
        "record, odometer",
        [
            (time_record("2020-01-01", Status.COMPLETED), None),
            (time_record("2025-01-03", Status.COMPLETED), None),
            (time_record(None, Status.COMPLETED), 10),
            (distance_record(50000, Status.COMPLETED), 99999),
            (distance_record(50000, Status.COMPLETED), None),
        ],
    )
    def test_completed(self, record, odometer):
        result = derive_status(record, odometer, NOW)
        assert result.status == Status.COMPLETED
        assert result.remaining_days is None
        assert result.remaining_km is None


class TestByTime:
    """Tests for time-based revisions."""

    def test_exactly_seven_days_is_due(self):
        result = derive_status(time_record("2025-01-08"), None, NOW)
        assert result.status == Status.DUE
        assert result.remaining_days == 7

    def test_eight_days_is_pending(self):
        result = derive_status(time_record("2025-01-09"), None, NOW)
        assert result.status == Status.PENDING
        assert result.remaining_days == 8

    def test_one_second_past_is_overdue(self):
        due = (NOW - timedelta(seconds=1)).isoformat()
        result = derive_status(time_record(due), None, NOW)
        assert result.status == Status.OVERDUE
        assert result.remaining_days == 0

    def test_due_instant_equal_to_now_is_not_overdue(self):
        """Strict comparison: the due instant itself is still 'due'."""
        result = derive_status(time_record("2025-01-01"), None, NOW)
        assert result.status == Status.DUE
        assert result.remaining_days == 0

    def test_remaining_days_rounds_up(self):
        now = NOW + timedelta(hours=12)
        result = derive_status(time_record("2025-01-09"), None, now)
        assert result.remaining_days == 8
        assert result.status == Status.PENDING

    def test_days_past_are_negative(self):
        result = derive_status(time_record("2024-12-20"), None, NOW)
        assert result.status == Status.OVERDUE
        assert result.remaining_days == -12

    def test_missing_due_date_is_pending(self):
        result = derive_status(time_record(None), None, NOW)
        assert result.status == Status.PENDING
        assert result.remaining_days is None

    def test_naive_now_is_utc(self):
        result = derive_status(time_record("2025-01-08"), None, datetime(2025, 1, 1))
        assert result.remaining_days == 7

    def test_ignores_odometer(self):
        record = time_record("2025-03-01")
        record.next_due_odometer = 100
        result = derive_status(record, 5000, NOW)
        assert result.status == Status.PENDING
        assert result.remaining_km is None

    def test_persisted_overdue_is_recomputed(self):
        result = derive_status(time_record("2025-06-01", Status.OVERDUE), None, NOW)
        assert result.status == Status.PENDING


class TestByDistance:
    """Tests for distance-based revisions."""

    @pytest.mark.parametrize(
        "odometer, status, remaining",
        [
            (49800, Status.DUE, 200),
            (49799, Status.PENDING, 201),
            (50001, Status.OVERDUE, -1),
            (50000, Status.DUE, 0),
        ],
    )
    def test_boundaries(self, odometer, status, remaining):
        result = derive_status(distance_record(50000), odometer, NOW)
        assert result.status == status
        assert result.remaining_km == remaining
        assert result.remaining_days is None

    def test_unknown_odometer_is_pending(self):
        for due in (0, 100, 50000):
            result = derive_status(distance_record(due), None, NOW)
            assert result.status == Status.PENDING
            assert result.remaining_km is None

    def test_missing_due_odometer_is_pending(self):
        result = derive_status(distance_record(None), 49900, NOW)
        assert result.status == Status.PENDING

    def test_fractional_odometer(self):
        result = derive_status(distance_record(50000), 50000.5, NOW)
        assert result.status == Status.OVERDUE


class TestDeriveStatusIsPure:
    def test_same_inputs_same_result(self):
        record = distance_record(50000)
        assert derive_status(record, 49850, NOW) == derive_status(record, 49850, NOW)

    def test_record_changes_are_seen(self):
        record = distance_record(50000)
        assert derive_status(record, 49850, NOW).status == Status.DUE
        record.next_due_odometer = 60000
        assert derive_status(record, 49850, NOW).status == Status.PENDING

    def test_remaining_km_keeps_input_type(self):
        record = distance_record(50000)
        assert type(derive_status(record, 49850, NOW).remaining_km) is int
        assert type(derive_status(record, 49850.0, NOW).remaining_km) is float

    def test_distance_result_reused_across_instants(self):
        record = distance_record(51234)
        first = derive_status(record, 50000, NOW)
        later = derive_status(record, 50000, NOW + timedelta(hours=1))
        assert later is first


class TestComputeRevisions:
    """Tests for joining records with the snapshot index."""

    def test_scenario_due_then_overdue(self):
        record = distance_record(50000)
        first = compute_revision(record, {"AB-123-CD": 49850}, NOW)
        assert first.current_odometer == 49850
        assert first.remaining_km == 150
        assert first.status == Status.DUE

        second = compute_revision(record, {"AB-123-CD": 50100}, NOW)
        assert second.remaining_km == -100
        assert second.status == Status.OVERDUE

    def test_stale_snapshot_without_plate(self):
        computed = compute_revision(distance_record(50000), {"EF-456-GH": 1}, NOW)
        assert computed.current_odometer is None
        assert computed.status == Status.PENDING

    def test_computes_every_record(self):
        records = [time_record("2024-01-01"), distance_record(50000)]
        computed = compute_revisions(records, {"AB-123-CD": 49990}, NOW)
        assert [c.status for c in computed] == [Status.OVERDUE, Status.DUE]

    def test_to_dict_carries_effective_status(self):
        computed = compute_revision(distance_record(50000), {"AB-123-CD": 50100}, NOW)
        d = computed.to_dict()
        assert d["status"] == "overdue"
        assert d["remainingKm"] == -100
        assert d["currentOdometer"] == 50100
        assert d["remainingDays"] is None
        assert d["vehiclePlate"] == "AB-123-CD"


class TestCalcNextDue:
    """Tests for threshold helpers."""

    def test_next_due_date(self):
        assert calc_next_due_date("2025-01-15", 90) == "2025-04-15"

    def test_next_due_date_missing_inputs(self):
        assert calc_next_due_date(None, 90) is None
        assert calc_next_due_date("2025-01-15", None) is None

    def test_next_due_odometer(self):
        assert calc_next_due_odometer(48000, 10000) == 58000

    def test_next_due_odometer_from_zero(self):
        assert calc_next_due_odometer(0, 10000) == 10000

    def test_next_due_odometer_missing_inputs(self):
        assert calc_next_due_odometer(None, 10000) is None
        assert calc_next_due_odometer(48000, None) is None
