"""Command line entry point used by schedulers and operators."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from sofr_tracker import SofrTracker
from sofr_tracker.config import MissingRatePolicy, Settings
from sofr_tracker.errors import SofrTrackerError
from sofr_tracker.utils.logger import get_logger, set_level

LOGGER = get_logger(__name__)

__all__ = ["build_parser", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sofr-tracker", description=__doc__)
    parser.add_argument("--db", dest="db_url", help="Database URL (defaults to SOFR_TRACKER_DB_URL)")
    parser.add_argument(
        "--missing-rate",
        dest="missing_rate_policy",
        choices=[policy.value for policy in MissingRatePolicy],
        help="How to store observations without a primary rate",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subcommands = parser.add_subparsers(dest="command", required=True)

    sync_parser = subcommands.add_parser("sync", help="Sync the trailing lookback window")
    sync_parser.add_argument("--days", type=int, default=None, help="Lookback in days")

    backfill_parser = subcommands.add_parser("backfill", help="Sync an explicit historical window")
    backfill_parser.add_argument("--from", dest="start", required=True, help="Start date (YYYY-MM-DD)")
    backfill_parser.add_argument(
        "--to",
        dest="end",
        default=None,
        help="End date (YYYY-MM-DD, default today)",
    )

    subcommands.add_parser("status", help="Show sync metadata and table counts")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings()
    if args.missing_rate_policy:
        settings.missing_rate_policy = MissingRatePolicy(args.missing_rate_policy)
    return settings


def _dump(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_level("DEBUG")
    try:
        settings = _settings_from_args(args)
        with SofrTracker(args.db_url, settings=settings) as tracker:
            if args.command == "sync":
                result = asyncio.run(tracker.run_sync(args.days))
                _dump(result.to_dict())
            elif args.command == "backfill":
                result = asyncio.run(tracker.backfill(args.start, args.end))
                _dump(result.to_dict())
            else:
                _dump(tracker.status())
    except (SofrTrackerError, ValueError) as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
