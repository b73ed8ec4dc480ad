"""Flask JSON API for fleet revision tracking."""

import logging

from flask import Flask, jsonify, request

from fleet import (
    AlertStore,
    Config,
    GPSwoxFeed,
    InvalidRecord,
    RecordNotFound,
    RevisionMonitor,
    RevisionStore,
    Status,
    StoreError,
)
from fleet.analytics import cost_by_vehicle, monthly_cost, status_counts, total_cost

logger = logging.getLogger(__name__)


def create_app(config: Config = None) -> Flask:
    """Build the app around one monitor; the feed is optional."""
    config = config or Config.from_env()

    app = Flask(__name__)
    app.secret_key = config.SECRET_KEY

    feed = GPSwoxFeed.from_config(config) if config.gpswox_configured else None
    monitor = RevisionMonitor(
        RevisionStore(config.revisions_file),
        AlertStore(config.alerts_file),
        feed=feed,
    )

    def sorted_by_urgency(revisions):
        return sorted(revisions, key=lambda r: (r.status.rank, r.vehicle_plate))

    @app.errorhandler(RecordNotFound)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InvalidRecord)
    def invalid(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(StoreError)
    def store_failure(e):
        logger.error("Store failure: %s", e)
        return jsonify({"error": str(e)}), 500

    def json_body():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidRecord("Request body must be a JSON object")
        return data

    @app.route("/api/revisions", methods=["GET"])
    def list_revisions():
        """Computed revisions against the latest snapshot, most urgent first."""
        revisions = monitor.compute()
        status_filter = request.args.get("status", "").lower() or None
        plate = request.args.get("plate") or None
        if status_filter:
            revisions = [r for r in revisions if r.status.value == status_filter]
        if plate:
            revisions = [r for r in revisions if r.vehicle_plate == plate]
        return jsonify({
            "revisions": [r.to_dict() for r in sorted_by_urgency(revisions)],
            "snapshotAt": monitor.snapshot_at.isoformat() if monitor.snapshot_at else None,
        })

    @app.route("/api/revisions", methods=["POST"])
    def create_revision():
        record = monitor.store.create(json_body())
        return jsonify(record.to_dict()), 201

    @app.route("/api/revisions/<revision_id>", methods=["PATCH"])
    def update_revision(revision_id: str):
        record = monitor.store.update(revision_id, json_body())
        return jsonify(record.to_dict())

    @app.route("/api/revisions/<revision_id>/complete", methods=["POST"])
    def complete_revision(revision_id: str):
        record = monitor.store.complete(revision_id)
        return jsonify(record.to_dict())

    @app.route("/api/revisions/<revision_id>", methods=["DELETE"])
    def delete_revision(revision_id: str):
        monitor.store.delete(revision_id)
        return "", 204

    @app.route("/api/alerts", methods=["GET"])
    def list_alerts():
        include_ack = request.args.get("all", "").lower() == "true"
        alerts = monitor.alert_store.list(include_acknowledged=include_ack)
        return jsonify({"alerts": [a.to_dict() for a in alerts]})

    @app.route("/api/alerts/<alert_id>/ack", methods=["POST"])
    def acknowledge_alert(alert_id: str):
        data = request.get_json(silent=True) or {}
        alert = monitor.alert_store.acknowledge(alert_id, ack=data.get("ack", True))
        return jsonify(alert.to_dict())

    @app.route("/api/refresh", methods=["POST"])
    def refresh():
        """Poll the fleet, recompute and raise alerts for forward transitions."""
        result = monitor.refresh()
        return jsonify({
            "snapshotAvailable": result.snapshot_available,
            "revisions": [r.to_dict() for r in sorted_by_urgency(result.revisions)],
            "alerts": [a.to_dict() for a in result.alerts],
        })

    @app.route("/api/analytics", methods=["GET"])
    def analytics():
        revisions = monitor.compute()
        return jsonify({
            "totalCost": total_cost(revisions),
            "statusCounts": status_counts(revisions),
            "costByVehicle": [
                {"plate": plate, "cost": cost} for plate, cost in cost_by_vehicle(revisions)
            ],
            "monthlyCost": [
                {"month": month, "cost": cost} for month, cost in monthly_cost(revisions)
            ],
            "due": sum(1 for r in revisions if r.status == Status.DUE),
            "overdue": sum(1 for r in revisions if r.status == Status.OVERDUE),
        })

    return app


if __name__ == "__main__":
    from fleet.logging_config import setup_logging

    config = Config.from_env()
    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT, config.LOG_FILE)
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app(config).run(debug=True, host="0.0.0.0", port=5001)
