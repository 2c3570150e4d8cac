"""CLI entry-point: ``python -m mindshare snapshot|fetch|amplify``."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from mindshare import config
from mindshare.models import Window
from mindshare.pipeline import run_amplify, run_fetch, run_snapshot

logger = logging.getLogger(__name__)


def _parse_as_of(value: str) -> datetime:
    """Accept ``YYYY-MM-DD`` (end of that UTC day) or a full ISO timestamp."""
    try:
        if len(value) == 10:
            day = datetime.strptime(value, "%Y-%m-%d")
            return day.replace(hour=23, minute=59, second=59, tzinfo=UTC)
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid --as-of value: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _require(*paths: Path) -> None:
    missing = [p for p in paths if not p.exists()]
    if missing:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        for p in missing:
            logger.error("Input file not found: %s", p)
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="mindshare",
        description="Project mindshare snapshots normalised to 10,000 bps.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── snapshot ──────────────────────────────────────────────────────
    snap_parser = sub.add_parser("snapshot", help="Compute and store mindshare.")
    snap_parser.add_argument(
        "--catalog",
        type=Path,
        required=True,
        help="Entity catalog YAML.",
    )
    snap_parser.add_argument(
        "--tweets",
        type=Path,
        required=True,
        help="Tweet corpus (JSON lines).",
    )
    snap_parser.add_argument(
        "--window",
        choices=[w.value for w in Window] + ["all"],
        default="all",
        help="Lookback window (default: all).",
    )
    snap_parser.add_argument(
        "--as-of",
        type=_parse_as_of,
        default=None,
        help="Snapshot time, YYYY-MM-DD or ISO timestamp (default: now).",
    )
    snap_parser.add_argument(
        "--db",
        type=Path,
        default=config.DB_PATH,
        help=f"SQLite snapshot database (default: {config.DB_PATH}).",
    )
    snap_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and log the allocation but skip the database.",
    )

    # ── fetch ─────────────────────────────────────────────────────────
    fetch_parser = sub.add_parser(
        "fetch",
        help="Fetch recent tweets mentioning catalog entities from X.",
    )
    fetch_parser.add_argument(
        "--catalog",
        type=Path,
        required=True,
        help="Entity catalog YAML.",
    )
    fetch_parser.add_argument(
        "--out",
        type=Path,
        required=True,
        help="Output corpus path.",
    )

    # ── amplify ───────────────────────────────────────────────────────
    amp_parser = sub.add_parser(
        "amplify",
        help="Rank entities a user's own tweets amplify.",
    )
    amp_parser.add_argument(
        "--catalog",
        type=Path,
        required=True,
        help="Entity catalog YAML.",
    )
    amp_parser.add_argument(
        "--tweets",
        type=Path,
        required=True,
        help="The user's tweets (JSON lines).",
    )
    amp_parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Rows to show (default: 10).",
    )

    args = parser.parse_args(argv)

    if args.command == "snapshot":
        _require(args.catalog, args.tweets)
        windows = tuple(Window) if args.window == "all" else (Window(args.window),)
        run_snapshot(
            catalog_path=args.catalog,
            tweets_path=args.tweets,
            windows=windows,
            as_of=args.as_of,
            db_path=args.db,
            dry_run=args.dry_run,
        )
    elif args.command == "fetch":
        _require(args.catalog)
        if not config.X_BEARER_TOKEN:
            logging.basicConfig(level=logging.INFO, stream=sys.stderr)
            logger.error("X API not configured. Set X_BEARER_TOKEN in .env")
            sys.exit(1)
        run_fetch(catalog_path=args.catalog, out_path=args.out)
    elif args.command == "amplify":
        _require(args.catalog, args.tweets)
        run_amplify(catalog_path=args.catalog, tweets_path=args.tweets, top=args.top)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
