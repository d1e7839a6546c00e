"""Command-line entry point for the session cut-over."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from .config import MigrationConfig
from .exceptions import ConfigurationError, StoreUnavailableError
from .logging_utils import configure_structured_logging, get_migration_logger
from .migration import MigrationReport, migrate_from_config

logger = get_migration_logger("cli")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="session-cutover",
        description="Move live sessions from a Redis namespace into the SQLite session table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview what would be migrated
    session-cutover --redis-url redis://cache:6379/0 --sqlite-path ./sessions.db --dry-run

    # Run with settings from a YAML file, failing the deploy step on any bad record
    session-cutover --config migration.yaml --fail-on-errors

Settings not given on the command line fall back to SESSION_CUTOVER_* variables.
        """,
    )
    parser.add_argument("--config", help="YAML file with migration settings")
    parser.add_argument("--prefix", help="Namespace prefix of session keys (default session:)")
    parser.add_argument("--redis-url", help="Source Redis URL")
    parser.add_argument("--sqlite-path", help="Destination SQLite database file")
    parser.add_argument("--table", help="Destination table name")
    parser.add_argument("--payload-format", choices=["json", "hash"], help="How sessions are stored")
    parser.add_argument("--concurrency", type=int, help="Keys processed in parallel")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Read and transform every session without writing",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--report-json", action="store_true", help="Print the full report as JSON")
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Exit with status 1 when any session failed to migrate",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every key")
    return parser


def config_from_args(args: argparse.Namespace) -> MigrationConfig:
    """File (or environment) settings, overridden by explicit flags."""
    base = MigrationConfig.from_file(args.config) if args.config else MigrationConfig.from_env()
    return base.with_overrides(
        prefix=args.prefix,
        redis_url=args.redis_url,
        sqlite_path=args.sqlite_path,
        table=args.table,
        payload_format=args.payload_format,
        concurrency=args.concurrency,
        dry_run=args.dry_run,
    ).validate()


def print_report(report: MigrationReport, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print("\n" + "=" * 70)
    print("SESSION MIGRATION" + (" (DRY RUN)" if report.dry_run else ""))
    print("=" * 70)
    print(f"Prefix: {report.prefix}")
    print(f"Keys found: {report.total_keys}")
    print(f"Migrated: {report.migrated}")
    print(f"Already present: {report.skipped_duplicate}")
    print(f"Expired before read: {report.skipped_missing}")
    print(f"Failed: {report.failed}")
    for key, reason in report.failures:
        print(f"  {key}: {reason}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_structured_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        logger_name="session_cutover",
        json_output=args.json_logs,
    )

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.error(e.message)

    try:
        report = asyncio.run(migrate_from_config(config))
    except StoreUnavailableError as e:
        logger.error(f"Migration aborted before any write: {e.message}")
        return EXIT_FATAL

    print_report(report, as_json=args.report_json)

    if args.fail_on_errors and report.has_failures:
        return EXIT_FAILURES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
