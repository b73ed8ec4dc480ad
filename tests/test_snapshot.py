#!/usr/bin/env python3
"""Tests for the fleet snapshot index."""

from fleet import FleetSnapshotEntry, build_snapshot_index, lookup_odometer


class TestBuildSnapshotIndex:
    """Tests for build_snapshot_index."""

    def test_maps_plate_to_odometer(self):
        index = build_snapshot_index([
            FleetSnapshotEntry("AB-123-CD", 49850),
            FleetSnapshotEntry("EF-456-GH", 120000.5),
        ])
        assert index == {"AB-123-CD": 49850, "EF-456-GH": 120000.5}

    def test_last_duplicate_wins(self):
        index = build_snapshot_index([
            FleetSnapshotEntry("AB-123-CD", 1000),
            FleetSnapshotEntry("EF-456-GH", 5),
            FleetSnapshotEntry("AB-123-CD", 900),
        ])
        assert index["AB-123-CD"] == 900

    def test_idempotent(self):
        entries = [
            FleetSnapshotEntry("AB-123-CD", 1000),
            FleetSnapshotEntry("AB-123-CD", 1200),
            FleetSnapshotEntry("EF-456-GH", None),
        ]
        assert build_snapshot_index(entries) == build_snapshot_index(entries)

    def test_accepts_generator(self):
        index = build_snapshot_index(FleetSnapshotEntry(p, 1) for p in ["A", "B"])
        assert set(index) == {"A", "B"}


class TestLookupOdometer:
    """Tests for lookup_odometer."""

    def test_absent_plate_is_unknown(self):
        assert lookup_odometer({"AB-123-CD": 1000}, "ZZ-999-ZZ") is None

    def test_plate_match_is_exact(self):
        assert lookup_odometer({"AB-123-CD": 1000}, "ab-123-cd") is None
        assert lookup_odometer({"AB-123-CD": 1000}, "AB-123-CD") == 1000
