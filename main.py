"""
RatingSync - Restaurant rating aggregation

CLI entry point for replaying review changes and reconciling aggregates.
"""

import argparse
import logging
import sys

from ratingsync.reconciler.aggregation import AggregationReconciler, FAILED
from ratingsync.reconciler.audit import AggregateAuditor
from ratingsync.replay import ChangeReplayer, load_events
from ratingsync.store.json_store import JsonRecordStore
import ratingsync.settings as settings


def setup_logging(log_level: str = "INFO", log_file: str = settings.LOG_FILE):
    """Configure logging for the entire application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ],
        force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="RatingSync - Restaurant rating aggregation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Apply recorded review changes and reconcile each one
  python main.py replay events.json --apply --workers 4

  # Recompute one restaurant, or every restaurant
  python main.py reconcile --group R1
  python main.py reconcile --all

  # Report restaurants whose stored aggregate has drifted
  python main.py audit
        """
    )

    parser.add_argument(
        "--data-root",
        default=str(settings.DATA_ROOT),
        help=f"Data directory (default: {settings.DATA_ROOT})"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.LOG_LEVEL})"
    )

    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help=f"Log file (default: {settings.LOG_FILE})"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", help="Replay recorded change events")
    replay.add_argument("events", help="JSON file of change events")
    replay.add_argument(
        "--workers",
        type=int,
        default=settings.REPLAY_WORKERS,
        help=f"Concurrent reconciliations (default: {settings.REPLAY_WORKERS})"
    )
    replay.add_argument(
        "--apply",
        action="store_true",
        help="Write each change to the review store before reconciling it"
    )

    reconcile = subparsers.add_parser("reconcile", help="Recompute stored aggregates")
    target = reconcile.add_mutually_exclusive_group(required=True)
    target.add_argument("--group", action="append", help="Restaurant id (repeatable)")
    target.add_argument("--all", action="store_true", help="Every known restaurant")

    audit = subparsers.add_parser("audit", help="Export stored vs actual aggregates")
    audit.add_argument(
        "--output-dir",
        default=str(settings.OUTPUT_ROOT),
        help=f"Output directory (default: {settings.OUTPUT_ROOT})"
    )

    return parser


def run_command(args: argparse.Namespace) -> int:
    """Run the selected subcommand and return the process exit code."""
    store = JsonRecordStore(
        args.data_root,
        group_field=settings.GROUP_FIELD,
        value_field=settings.VALUE_FIELD,
        count_field=settings.COUNT_FIELD,
        average_field=settings.AVERAGE_FIELD
    )
    reconciler = AggregationReconciler(store)

    if args.command == "replay":
        replayer = ChangeReplayer(reconciler, workers=args.workers, apply_changes=args.apply)
        summary = replayer.replay(load_events(args.events))
        print(f"Replay summary: {summary}")
        return 1 if summary.get(FAILED) else 0

    if args.command == "reconcile":
        results = reconciler.reconcile_all(None if args.all else args.group)
        for result in results:
            if result.ok:
                print(f"{result.group_id}: {result.aggregate.count} reviews, "
                      f"average {result.aggregate.average}")
            else:
                print(f"{result.group_id}: FAILED ({result.error})")
        return 0 if all(r.ok for r in results) else 1

    auditor = AggregateAuditor(reconciler, tolerance=settings.AUDIT_TOLERANCE)
    output_path = auditor.export(args.output_dir)
    print(f"Audit table: {output_path}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    try:
        exit_code = run_command(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"\n{args.command} failed: {e}")
        print(f"Check {args.log_file} for details")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
