"""Shipping dispatch management CLI.

Database schema commands plus the two batch jobs cron runs:

Usage:
    python src/manage.py setup-db                          # Create all tables
    python src/manage.py drop-db                           # Drop all tables
    python src/manage.py plan-routes --date 2026-10-21     # Build manifests (default: tomorrow)
    python src/manage.py process-pickups                   # Book due carrier pickups
"""

import argparse
import json
import sys
from datetime import date, datetime, timedelta


def _tomorrow() -> date:
    from shipping.settings import get_settings

    return datetime.now(get_settings().tz).date() + timedelta(days=1)


def _shipping():
    from shipping.domain import shipping

    print("Initializing shipping domain...")
    shipping.init()
    return shipping


def setup_databases():
    """Create the shipping database schema."""
    from shipping.utils.db import setup_db

    domain = _shipping()
    print("Creating shipping database schema...")
    setup_db(domain)
    print("  shipping schema ready.")
    print("Done.")


def drop_databases():
    """Drop the shipping database schema."""
    from shipping.utils.db import drop_db

    domain = _shipping()
    print("Dropping shipping database schema...")
    drop_db(domain)
    print("  shipping schema dropped.")
    print("Done.")


def plan_routes(delivery_date: date, holder: str | None = None) -> int:
    """Run daily route planning for a date; exit status 1 if any route failed."""
    from shipping.errors import PlanningInProgressError
    from shipping.routing.planner import plan_daily_routes

    domain = _shipping()
    with domain.domain_context():
        try:
            summary = plan_daily_routes(delivery_date, holder=holder)
        except PlanningInProgressError as exc:
            print(f"Planning skipped: {exc.messages}")
            return 2
    print(json.dumps(summary, indent=2))
    return 1 if summary["failed_routes"] else 0


def process_pickups() -> int:
    """Book every due carrier pickup."""
    from shipping.task.pickup import ProcessPickupQueue

    domain = _shipping()
    with domain.domain_context():
        summary = domain.process(ProcessPickupQueue(), asynchronous=False)
    print(json.dumps(summary, indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Shipping dispatch management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    plan_parser = subparsers.add_parser("plan-routes", help="Build vehicle manifests for a delivery date")
    plan_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Delivery date as YYYY-MM-DD (default: tomorrow)",
    )
    plan_parser.add_argument("--holder", default=None, help="Planning lease holder name")

    subparsers.add_parser("process-pickups", help="Book due carrier pickups")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "plan-routes":
        sys.exit(plan_routes(args.date or _tomorrow(), args.holder))
    elif args.command == "process-pickups":
        sys.exit(process_pickups())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
