#!/usr/bin/env python3
"""
Unified CLI for fleet revision tracking.

Commands:
  status     - Show which revisions are overdue, due, or pending
  add        - Schedule a new revision
  complete   - Mark a revision completed
  delete     - Remove a revision
  alerts     - List raised alerts
  ack        - Acknowledge an alert
  watch      - Poll the fleet periodically and raise alerts
  analytics  - Cost and status summaries
"""

import argparse
import logging
import sys
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from fleet import (
    AlertStore,
    ComputedRevision,
    Config,
    GPSwoxFeed,
    RevisionAlert,
    RevisionMode,
    RevisionMonitor,
    RevisionStore,
    RevisionType,
    Status,
    StoreError,
)
from fleet.analytics import cost_by_vehicle, monthly_cost, status_counts, total_cost
from fleet.logging_config import setup_logging

logger = logging.getLogger("fleetrev")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format a distance for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"{cost:,.2f}" if cost is not None else "-"


def format_remaining_km(rev: ComputedRevision) -> str:
    """Format remaining distance for display."""
    if rev.remaining_km is None:
        return "-"
    if rev.remaining_km < 0:
        return f"-{abs(rev.remaining_km):,.0f}"
    return f"{rev.remaining_km:,.0f}"


def format_remaining_days(rev: ComputedRevision) -> str:
    """Format remaining time for display (e.g., '12d' or '-3d')."""
    if rev.remaining_days is None:
        return "-"
    return f"{rev.remaining_days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def short_id(value: Optional[str]) -> str:
    return value[:8] if value else "-"


# =============================================================================
# Tables
# =============================================================================


def make_status_table(revisions: List[ComputedRevision]) -> List[List[str]]:
    """Convert computed revisions to table rows."""
    rows = []
    for rev in revisions:
        record = rev.record
        if record.mode == RevisionMode.BY_TIME:
            due = record.next_due_date or "-"
            remaining = format_remaining_days(rev)
        else:
            due = format_km(record.next_due_odometer)
            remaining = format_remaining_km(rev)
        rows.append(
            [
                short_id(record.id),
                record.vehicle_plate,
                record.type.label,
                due,
                format_km(rev.current_odometer),
                remaining,
            ]
        )
    return rows


def make_alert_table(alerts: List[RevisionAlert]) -> List[List[str]]:
    """Convert alerts to table rows."""
    return [
        [
            short_id(alert.id),
            alert.triggered_at[:16].replace("T", " "),
            alert.vehicle_plate,
            alert.status.value.upper(),
            "yes" if alert.ack else "no",
            truncate(alert.message, 50),
        ]
        for alert in alerts
    ]


def resolve_id(ids: List[str], prefix: str) -> Optional[str]:
    """Match a full id or a unique prefix of one."""
    if prefix in ids:
        return prefix
    matches = [i for i in ids if i.startswith(prefix)]
    return matches[0] if len(matches) == 1 else None


# =============================================================================
# Wiring
# =============================================================================


def build_monitor(config: Config, use_feed: bool = True) -> RevisionMonitor:
    feed = None
    if use_feed and config.gpswox_configured:
        feed = GPSwoxFeed.from_config(config)
    elif use_feed:
        logger.info("GPSwox credentials not configured, odometers unknown")
    return RevisionMonitor(
        RevisionStore(config.revisions_file),
        AlertStore(config.alerts_file),
        feed=feed,
    )


# =============================================================================
# Status command
# =============================================================================


def cmd_status(args, config: Config):
    """Show which revisions are overdue, due, or pending."""
    monitor = build_monitor(config, use_feed=not args.no_feed)
    result = monitor.refresh()
    revisions = result.revisions

    if args.plate:
        revisions = [r for r in revisions if r.vehicle_plate == args.plate]
    if args.status:
        revisions = [r for r in revisions if r.status.value == args.status]

    print(f"Revisions: {len(revisions)}")
    if result.snapshot_available:
        print(f"Fleet snapshot: {len(monitor.index)} vehicles")
    else:
        print("Fleet snapshot: unavailable (distance-based revisions pending)")
    if result.alerts:
        print(f"New alerts: {len(result.alerts)}")
    print()

    headers = ["Id", "Plate", "Type", "Due", "Odometer", "Remaining"]
    for status, title in (
        (Status.OVERDUE, "OVERDUE"),
        (Status.DUE, "DUE"),
        (Status.PENDING, "PENDING"),
        (Status.COMPLETED, "COMPLETED"),
    ):
        group = sorted(
            [r for r in revisions if r.status == status],
            key=lambda r: (r.vehicle_plate, r.record.type.value),
        )
        if group:
            print(f"{title}:")
            print(tabulate(make_status_table(group), headers=headers, tablefmt="simple"))
            print()

    return 0


# =============================================================================
# Add / complete / delete commands
# =============================================================================


def cmd_add(args, config: Config):
    """Schedule a new revision."""
    partial = {
        "vehiclePlate": args.plate,
        "type": args.type,
        "mode": args.mode,
        "intervalDays": args.interval_days,
        "intervalKm": args.interval_km,
        "lastDate": args.last_date,
        "lastOdometer": args.last_km,
        "nextDueDate": args.next_due_date,
        "nextDueOdometer": args.next_due_km,
        "cost": args.cost,
        "notes": args.notes,
    }

    print(f"Adding revision to {config.revisions_file}:")
    print(f"  Plate: {args.plate}")
    print(f"  Type:  {args.type}")
    print(f"  Mode:  {args.mode}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    record = RevisionStore(config.revisions_file).create(partial)
    due = record.next_due_date or format_km(record.next_due_odometer)
    print(f"Revision saved: {record.id} (next due: {due})")
    return 0


def _resolve_revision(store: RevisionStore, prefix: str) -> Optional[str]:
    revision_id = resolve_id([r.id for r in store.list()], prefix)
    if revision_id is None:
        print(f"Error: Unknown or ambiguous revision id '{prefix}'")
    return revision_id


def cmd_complete(args, config: Config):
    """Mark a revision completed."""
    store = RevisionStore(config.revisions_file)
    revision_id = _resolve_revision(store, args.revision_id)
    if revision_id is None:
        return 1
    record = store.complete(revision_id)
    print(f"Completed: {record.display_name}")
    return 0


def cmd_delete(args, config: Config):
    """Remove a revision."""
    store = RevisionStore(config.revisions_file)
    revision_id = _resolve_revision(store, args.revision_id)
    if revision_id is None:
        return 1
    if args.dry_run:
        print(f"Would delete revision {revision_id}")
        print("(dry run - no changes made)")
        return 0
    store.delete(revision_id)
    print(f"Deleted revision {revision_id}")
    return 0


# =============================================================================
# Alert commands
# =============================================================================


def cmd_alerts(args, config: Config):
    """List raised alerts."""
    alerts = AlertStore(config.alerts_file).list(include_acknowledged=args.all)
    if not alerts:
        print("No alerts.")
        return 0
    headers = ["Id", "Triggered", "Plate", "Status", "Ack", "Message"]
    print(tabulate(make_alert_table(alerts), headers=headers, tablefmt="simple"))
    return 0


def cmd_ack(args, config: Config):
    """Acknowledge an alert."""
    store = AlertStore(config.alerts_file)
    alert_id = resolve_id([a.id for a in store.list()], args.alert_id)
    if alert_id is None:
        print(f"Error: Unknown or ambiguous alert id '{args.alert_id}'")
        return 1
    alert = store.acknowledge(alert_id, ack=not args.undo)
    print(f"Alert {alert.id} {'acknowledged' if alert.ack else 'reopened'}")
    return 0


# =============================================================================
# Watch command
# =============================================================================


def cmd_watch(args, config: Config):
    """Poll the fleet periodically and raise alerts."""
    monitor = build_monitor(config)
    interval = args.interval if args.interval is not None else config.POLL_INTERVAL

    def report(result):
        for alert in result.alerts:
            print(f"[{alert.status.value.upper()}] {alert.message}")

    print(f"Watching every {interval}s (Ctrl-C to stop)")
    try:
        monitor.watch(interval, iterations=args.iterations, on_refresh=report)
    except KeyboardInterrupt:
        print()
    return 0


# =============================================================================
# Analytics command
# =============================================================================


def cmd_analytics(args, config: Config):
    """Cost and status summaries."""
    monitor = build_monitor(config, use_feed=False)
    revisions = monitor.compute()

    print(f"Revisions: {len(revisions)}")
    print(f"Total cost: {format_cost(total_cost(revisions))}")
    print()

    counts = status_counts(revisions)
    print(tabulate([[k, v] for k, v in counts.items()], headers=["Status", "Count"], tablefmt="simple"))
    print()

    by_vehicle = cost_by_vehicle(revisions, limit=args.top)
    if by_vehicle:
        rows = [[plate, format_cost(cost)] for plate, cost in by_vehicle]
        print(tabulate(rows, headers=["Plate", "Cost"], tablefmt="simple"))
        print()

    by_month = monthly_cost(revisions)
    if by_month:
        rows = [[month, format_cost(cost)] for month, cost in by_month]
        print(tabulate(rows, headers=["Month", "Cost"], tablefmt="simple"))

    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet revision tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s status
  %(prog)s status --status overdue --no-feed
  %(prog)s add AB-123-CD --type oil_change --mode by_distance \\
      --interval-km 10000 --last-km 48000
  %(prog)s add AB-123-CD --type vignette --mode by_time \\
      --interval-days 365 --last-date 2025-01-15
  %(prog)s complete 3f2a
  %(prog)s alerts --all
  %(prog)s watch --interval 30
""",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding revisions.yaml and alerts.yaml (default: $FLEET_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Show which revisions are overdue, due, or pending"
    )
    status_parser.add_argument("--plate", type=str, help="Only this vehicle plate")
    status_parser.add_argument(
        "--status",
        choices=[s.value for s in Status],
        help="Only revisions with this effective status",
    )
    status_parser.add_argument(
        "--no-feed",
        action="store_true",
        help="Do not poll the tracking server",
    )

    # Add subcommand
    add_parser = subparsers.add_parser("add", help="Schedule a new revision")
    add_parser.add_argument("plate", type=str, help="Vehicle plate")
    add_parser.add_argument(
        "--type",
        choices=[t.value for t in RevisionType],
        default=RevisionType.OIL_CHANGE.value,
        help="Revision type (default: oil_change)",
    )
    add_parser.add_argument(
        "--mode",
        choices=[m.value for m in RevisionMode],
        default=RevisionMode.BY_TIME.value,
        help="Due by time or by distance (default: by_time)",
    )
    add_parser.add_argument("--interval-days", type=int, help="Interval in days")
    add_parser.add_argument("--interval-km", type=int, help="Interval in km")
    add_parser.add_argument("--last-date", type=str, help="Last serviced on (YYYY-MM-DD)")
    add_parser.add_argument("--last-km", type=float, help="Odometer when last serviced")
    add_parser.add_argument("--next-due-date", type=str, help="Explicit due date (YYYY-MM-DD)")
    add_parser.add_argument("--next-due-km", type=float, help="Explicit due odometer")
    add_parser.add_argument("--cost", type=float, help="Cost of the revision")
    add_parser.add_argument("--notes", type=str, help="Notes")
    add_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    # Complete subcommand
    complete_parser = subparsers.add_parser("complete", help="Mark a revision completed")
    complete_parser.add_argument("revision_id", type=str, help="Revision id or unique prefix")

    # Delete subcommand
    delete_parser = subparsers.add_parser("delete", help="Remove a revision")
    delete_parser.add_argument("revision_id", type=str, help="Revision id or unique prefix")
    delete_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without saving",
    )

    # Alerts subcommand
    alerts_parser = subparsers.add_parser("alerts", help="List raised alerts")
    alerts_parser.add_argument(
        "--all",
        action="store_true",
        help="Include acknowledged alerts",
    )

    # Ack subcommand
    ack_parser = subparsers.add_parser("ack", help="Acknowledge an alert")
    ack_parser.add_argument("alert_id", type=str, help="Alert id or unique prefix")
    ack_parser.add_argument("--undo", action="store_true", help="Clear the acknowledgement")

    # Watch subcommand
    watch_parser = subparsers.add_parser(
        "watch", help="Poll the fleet periodically and raise alerts"
    )
    watch_parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between polls (default: $FLEET_POLL_INTERVAL or 30)",
    )
    watch_parser.add_argument(
        "--iterations",
        type=int,
        help="Stop after this many polls",
    )

    # Analytics subcommand
    analytics_parser = subparsers.add_parser("analytics", help="Cost and status summaries")
    analytics_parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Number of vehicles in the cost ranking (default: 10)",
    )

    return parser


COMMANDS = {
    "status": cmd_status,
    "add": cmd_add,
    "complete": cmd_complete,
    "delete": cmd_delete,
    "alerts": cmd_alerts,
    "ack": cmd_ack,
    "watch": cmd_watch,
    "analytics": cmd_analytics,
}


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    if args.data_dir:
        config.DATA_DIR = args.data_dir
    if args.log_level:
        config.LOG_LEVEL = args.log_level.upper()
    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT, config.LOG_FILE)

    try:
        return COMMANDS[args.command](args, config)
    except StoreError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
