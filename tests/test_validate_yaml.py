#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from fleet.store import load_schema
from validate_yaml import main, validate_data_file


class TestLoadSchema:
    """Tests for load_schema."""

    def test_has_expected_structure(self):
        schema = load_schema()
        assert "revisions" in schema["properties"]
        assert "alerts" in schema["properties"]
        assert set(schema["$defs"]) == {"revision", "alert"}


class TestValidateDataFile:
    """Tests for validate_data_file."""

    def test_valid_revisions_file(self, tmp_path):
        path = tmp_path / "revisions.yaml"
        path.write_text("""
revisions:
  - id: r1
    vehiclePlate: AB-123-CD
    type: oil_change
    mode: by_distance
    intervalKm: 10000
    nextDueOdometer: 58000
    status: pending
""")
        assert validate_data_file(path, load_schema()) == []

    def test_invalid_mode_reports_path(self, tmp_path):
        path = tmp_path / "revisions.yaml"
        path.write_text("""
revisions:
  - id: r1
    vehiclePlate: AB-123-CD
    type: oil_change
    mode: monthly
    status: pending
""")
        errors = validate_data_file(path, load_schema())
        assert errors[0].startswith("Schema validation error")
        assert "revisions.0.mode" in errors[1]

    def test_yaml_parse_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("revisions: [unclosed")
        errors = validate_data_file(path, load_schema())
        assert errors[0].startswith("YAML parse error")

    def test_empty_file_is_valid(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert validate_data_file(path, load_schema()) == []


class TestMain:
    def test_exit_codes(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text("alerts: []\n")
        bad = tmp_path / "bad.yaml"
        bad.write_text("vehicles: []\n")
        assert main([str(good)]) == 0
        assert main([str(good), str(bad)]) == 1
        out = capsys.readouterr().out
        assert "OK: good.yaml" in out
        assert "FAIL: bad.yaml" in out
