"""CLI entry point: init-db, sync, orgs, list, status, scheduler."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from gh_activity.config import load_config
from gh_activity.db import Database
from gh_activity.errors import SyncFailed
from gh_activity.github.client import GitHubClient
from gh_activity.logging_config import configure_logging
from gh_activity.orchestrator import discover_organizations, run_sync
from gh_activity.search import (
    SearchIndexManager,
    list_commits,
    list_issues,
    list_pull_requests,
)

logger = logging.getLogger("gh_activity.cli")

LISTERS = {
    "commits": list_commits,
    "pulls": list_pull_requests,
    "issues": list_issues,
}


def _emit(payload, output: str | None) -> None:
    text = json.dumps(payload, indent=2, default=str)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text + "\n")
        logger.info("Wrote %s", output)
    else:
        print(text)


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create tables and search indexes."""
    config = load_config()
    db = Database(config.database)
    try:
        db.apply_schema()
        SearchIndexManager(db).ensure_indexes()
    finally:
        db.close()


def cmd_sync(args: argparse.Namespace) -> None:
    """Run a one-shot sync and print roll-ups (or raw records with --raw)."""
    config = load_config()
    db = Database(config.database)

    try:
        SearchIndexManager(db).ensure_indexes()
        try:
            result = run_sync(config, db, org_logins=args.org, raw=args.raw)
        except SyncFailed as exc:
            logger.error("Sync failed: %s", exc)
            _emit({"error": str(exc), "failures": [f.to_dict() for f in exc.failures]}, args.output)
            sys.exit(1)

        if args.raw:
            _emit(result, args.output)
            return
        _emit(result.to_dict(), args.output)
        if result.partial:
            logger.warning("Sync finished with %d failures", len(result.failures))
    finally:
        db.close()


def cmd_orgs(args: argparse.Namespace) -> None:
    """Discover and store the organizations visible to the token."""
    config = load_config()
    db = Database(config.database)
    try:
        with GitHubClient(config.github) as client:
            logins = discover_organizations(client, db, config)
        _emit(logins, None)
    finally:
        db.close()


def cmd_list(args: argparse.Namespace) -> None:
    """Page through stored commits, pull requests or issues."""
    config = load_config()
    db = Database(config.database)
    try:
        page = LISTERS[args.entity](
            db,
            args.org or config.github.org_logins,
            page=args.page,
            page_size=args.page_size,
            search=args.search,
        )
        _emit(page.to_dict(), None)
    finally:
        db.close()


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the APScheduler-based scheduling loop."""
    from gh_activity.scheduler import start_scheduler

    config = load_config()
    db = Database(config.database)
    try:
        SearchIndexManager(db).ensure_indexes()
        start_scheduler(config, db)
    finally:
        db.close()


def cmd_status(args: argparse.Namespace) -> None:
    """Show recent ingestion runs."""
    config = load_config()
    db = Database(config.database)

    try:
        runs = db.get_recent_runs(limit=args.limit)
        if not runs:
            print("No ingestion runs found.")
            return

        fmt = "{:<36}  {:<8}  {:<20}  {:<20}  {:>8}  {:>8}  {}"
        print(fmt.format("RUN ID", "STATUS", "STARTED", "FINISHED", "UPSERTED", "FAILURES", "ORGS"))
        print("-" * 140)
        for r in runs:
            started = str(r["started_at"])[:19] if r["started_at"] else ""
            finished = str(r["finished_at"])[:19] if r["finished_at"] else ""
            print(fmt.format(
                str(r["id"])[:36],
                r["status"],
                started,
                finished,
                r.get("records_upserted", 0),
                r.get("failure_count", 0),
                ",".join(r.get("org_logins") or []),
            ))
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-activity",
        description="GitHub activity ingestion and per-user roll-ups",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create tables and search indexes")
    init_parser.set_defaults(func=cmd_init_db)

    sync_parser = subparsers.add_parser("sync", help="Run one-shot sync")
    sync_parser.add_argument(
        "--org", "-o",
        action="append",
        help="Organization login (repeatable; default: GITHUB_ORG_LOGINS or discovery)",
    )
    sync_parser.add_argument("--raw", action="store_true", help="Print normalized records instead of roll-ups")
    sync_parser.add_argument("--output", help="Write JSON to this file instead of stdout")
    sync_parser.set_defaults(func=cmd_sync)

    orgs_parser = subparsers.add_parser("orgs", help="Discover organizations for the token")
    orgs_parser.set_defaults(func=cmd_orgs)

    list_parser = subparsers.add_parser("list", help="Query stored activity")
    list_parser.add_argument("entity", choices=sorted(LISTERS))
    list_parser.add_argument("--org", "-o", action="append", help="Organization login (repeatable)")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--page-size", type=int, default=100)
    list_parser.add_argument("--search", "-s", help="Full-text search terms")
    list_parser.set_defaults(func=cmd_list)

    sched_parser = subparsers.add_parser("scheduler", help="Start scheduled sync loop")
    sched_parser.set_defaults(func=cmd_scheduler)

    status_parser = subparsers.add_parser("status", help="Show recent ingestion runs")
    status_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=10,
        help="Number of runs to show (default: 10)",
    )
    status_parser.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
