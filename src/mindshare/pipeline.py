"""Pipeline wiring for the CLI: snapshot, fetch and amplify runs."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from mindshare import config
from mindshare.amplify import rank_amplified
from mindshare.corpus import load_items, write_items
from mindshare.matcher import build_patterns
from mindshare.models import AmplifiedEntity, SnapshotResult, Window
from mindshare.snapshot import compute_all_windows
from mindshare.store import SnapshotStore
from mindshare.universe import build_queries, load_catalog
from mindshare.x_client import XClient

logger = logging.getLogger(__name__)

_LEADERBOARD_SIZE = 10


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _log_leaderboard(result: SnapshotResult) -> None:
    top = sorted(result.allocation.items(), key=lambda kv: (-kv[1], kv[0]))
    for entity_id, bps in top[:_LEADERBOARD_SIZE]:
        logger.info(
            "  [%s] %-24s %5d bps  (attention=%.3f)",
            result.window,
            entity_id,
            bps,
            result.attention.get(entity_id, 0.0),
        )


def run_snapshot(
    catalog_path: Path,
    tweets_path: Path,
    windows: Sequence[Window] = tuple(Window),
    as_of: datetime | None = None,
    db_path: Path | None = None,
    dry_run: bool = False,
) -> list[SnapshotResult]:
    """Compute mindshare for every window and persist it unless *dry_run*."""
    _setup_logging()
    as_of = as_of or datetime.now(UTC)
    logger.info("=== mindshare snapshot start [as_of=%s] ===", as_of.isoformat())

    # ── 1. Inputs ─────────────────────────────────────────────────────
    catalog = load_catalog(catalog_path)
    if not catalog.entities:
        logger.error("No entities loaded from %s; nothing to do.", catalog_path)
        return []
    items = load_items(tweets_path)

    # ── 2. Compute + store ────────────────────────────────────────────
    store = None if dry_run else SnapshotStore(db_path=db_path or config.DB_PATH)
    results = compute_all_windows(
        catalog.entities,
        items,
        as_of,
        config=config.load_mindshare_config(),
        signals=catalog.signals,
        store=store,
        windows=windows,
    )

    for result in results:
        _log_leaderboard(result)
        for err in result.errors:
            logger.error("[%s] %s", result.window, err)

    logger.info("=== mindshare snapshot done [%d windows] ===", len(results))
    return results


def run_fetch(catalog_path: Path, out_path: Path) -> int:
    """Fetch recent tweets mentioning catalog entities into a corpus file."""
    _setup_logging()
    catalog = load_catalog(catalog_path)
    queries = build_queries(catalog.entities)
    if not queries:
        logger.error("No queries could be built from %s", catalog_path)
        return 0
    logger.info("Built %d queries for %d entities", len(queries), len(catalog.entities))

    client = XClient(
        bearer_token=config.X_BEARER_TOKEN, max_results=config.MAX_RESULTS
    )
    items = client.fetch_all(queries)
    return write_items(items, out_path)


def run_amplify(
    catalog_path: Path, tweets_path: Path, top: int = 10
) -> list[AmplifiedEntity]:
    """Rank the entities a single user's tweets amplify."""
    _setup_logging()
    catalog = load_catalog(catalog_path)
    patterns = build_patterns([e for e in catalog.entities if e.is_active])
    ranked = rank_amplified(
        load_items(tweets_path), patterns, config.load_mindshare_config()
    )
    for row in ranked[:top]:
        logger.info(
            "  %-24s value=%.0f tweets=%d likes=%d replies=%d retweets=%d",
            row.entity_id,
            row.value_score,
            row.tweet_count,
            row.likes,
            row.replies,
            row.retweets,
        )
    return ranked[:top]
