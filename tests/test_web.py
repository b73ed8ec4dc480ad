#!/usr/bin/env python3
"""Tests for the Flask JSON API."""

import pytest

from fleet import Config
from web.app import create_app


@pytest.fixture
def client(tmp_path):
    config = Config()
    config.DATA_DIR = tmp_path
    app = create_app(config)
    app.testing = True
    return app.test_client()


OIL = {
    "vehiclePlate": "AB-123-CD",
    "type": "oil_change",
    "mode": "by_distance",
    "intervalKm": 10000,
    "lastOdometer": 48000,
    "cost": 80,
}

OVERDUE_VIGNETTE = {
    "vehiclePlate": "EF-456-GH",
    "type": "vignette",
    "mode": "by_time",
    "nextDueDate": "2000-01-01",
}


class TestRevisionsApi:
    """Tests for /api/revisions."""

    def test_create_and_list(self, client):
        resp = client.post("/api/revisions", json=OIL)
        assert resp.status_code == 201
        created = resp.get_json()
        assert created["nextDueOdometer"] == 58000

        listed = client.get("/api/revisions").get_json()
        assert [r["id"] for r in listed["revisions"]] == [created["id"]]
        assert listed["revisions"][0]["status"] == "pending"
        assert listed["revisions"][0]["currentOdometer"] is None
        assert listed["snapshotAt"] is None

    def test_most_urgent_first_and_filter(self, client):
        client.post("/api/revisions", json=OIL)
        client.post("/api/revisions", json=OVERDUE_VIGNETTE)
        revisions = client.get("/api/revisions").get_json()["revisions"]
        assert [r["status"] for r in revisions] == ["overdue", "pending"]

        overdue = client.get("/api/revisions?status=overdue").get_json()["revisions"]
        assert [r["vehiclePlate"] for r in overdue] == ["EF-456-GH"]

        by_plate = client.get("/api/revisions?plate=AB-123-CD").get_json()["revisions"]
        assert [r["vehiclePlate"] for r in by_plate] == ["AB-123-CD"]

    def test_invalid_create(self, client):
        resp = client.post("/api/revisions", json=dict(OIL, mode="whenever"))
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_non_object_body(self, client):
        assert client.post("/api/revisions", json=[1, 2]).status_code == 400

    def test_update(self, client):
        rev_id = client.post("/api/revisions", json=OIL).get_json()["id"]
        resp = client.patch(f"/api/revisions/{rev_id}", json={"lastOdometer": 58000})
        assert resp.status_code == 200
        assert resp.get_json()["nextDueOdometer"] == 68000

    def test_complete(self, client):
        rev_id = client.post("/api/revisions", json=OVERDUE_VIGNETTE).get_json()["id"]
        assert client.post(f"/api/revisions/{rev_id}/complete").get_json()["status"] == "completed"
        listed = client.get("/api/revisions").get_json()["revisions"]
        assert listed[0]["status"] == "completed"

    def test_delete(self, client):
        rev_id = client.post("/api/revisions", json=OIL).get_json()["id"]
        assert client.delete(f"/api/revisions/{rev_id}").status_code == 204
        assert client.get("/api/revisions").get_json()["revisions"] == []

    def test_unknown_id(self, client):
        assert client.post("/api/revisions/nope/complete").status_code == 404
        assert client.delete("/api/revisions/nope").status_code == 404


class TestRefreshAndAlerts:
    """Tests for /api/refresh and /api/alerts."""

    def test_refresh_raises_alert_once(self, client):
        client.post("/api/revisions", json=OVERDUE_VIGNETTE)
        first = client.post("/api/refresh").get_json()
        assert first["snapshotAvailable"] is False
        assert [a["status"] for a in first["alerts"]] == ["overdue"]

        second = client.post("/api/refresh").get_json()
        assert second["alerts"] == []

    def test_acknowledge(self, client):
        client.post("/api/revisions", json=OVERDUE_VIGNETTE)
        alert_id = client.post("/api/refresh").get_json()["alerts"][0]["id"]

        assert len(client.get("/api/alerts").get_json()["alerts"]) == 1
        acked = client.post(f"/api/alerts/{alert_id}/ack").get_json()
        assert acked["ack"] is True
        assert client.get("/api/alerts").get_json()["alerts"] == []
        assert len(client.get("/api/alerts?all=true").get_json()["alerts"]) == 1

    def test_acknowledge_unknown(self, client):
        assert client.post("/api/alerts/nope/ack").status_code == 404


class TestAnalyticsApi:
    def test_summary(self, client):
        client.post("/api/revisions", json=OIL)
        client.post("/api/revisions", json=OVERDUE_VIGNETTE)
        data = client.get("/api/analytics").get_json()
        assert data["totalCost"] == 80
        assert data["statusCounts"]["overdue"] == 1
        assert data["overdue"] == 1
        assert data["costByVehicle"][0] == {"plate": "AB-123-CD", "cost": 80}
