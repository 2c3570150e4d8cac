"""Snapshot orchestration: window → match → aggregate → score → normalise → store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from mindshare.aggregate import aggregate
from mindshare.config import MindshareConfig
from mindshare.errors import InputContractViolation
from mindshare.matcher import build_patterns, is_relevant, match_items
from mindshare.models import (
    AggregatedMetrics,
    Entity,
    ExternalSignal,
    MatchedItem,
    MindshareSnapshot,
    SnapshotResult,
    TextItem,
    Window,
)
from mindshare.normalize import normalize
from mindshare.scoring import score

logger = logging.getLogger(__name__)


class SnapshotSink(Protocol):
    """Persistence collaborator for computed snapshots."""

    def existing_ids(self, window: Window, as_of_date: date) -> set[str]: ...

    def allocation_on(self, window: Window, as_of_date: date) -> dict[str, int]: ...

    def upsert_many(self, snapshots: Iterable[MindshareSnapshot]) -> int: ...


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def in_window(
    items: Iterable[TextItem], window: Window, as_of: datetime
) -> list[TextItem]:
    """Keep items created within ``[as_of - window, as_of]``."""
    end = _as_utc(as_of)
    start = end - window.delta
    return [item for item in items if start <= _as_utc(item.created_at) <= end]


def filter_relevant(matched: Iterable[MatchedItem]) -> list[MatchedItem]:
    """Drop (item, entity) pairs where the entity has keywords the text lacks."""
    relevant: list[MatchedItem] = []
    for m in matched:
        kept = [e for e in m.entities if is_relevant(m.item.text, e.keywords)]
        if kept:
            relevant.append(MatchedItem(item=m.item, entities=kept))
    return relevant


def keyword_match_strength(entity: Entity, config: MindshareConfig) -> float:
    """1.0 when the entity has relevance keywords, otherwise the configured penalty."""
    return 1.0 if entity.keywords else config.keyword_penalty


def _active_entities(entities: Iterable[Entity]) -> list[Entity]:
    active: list[Entity] = []
    seen: set[str] = set()
    for entity in entities:
        if entity.id in seen:
            raise InputContractViolation(f"duplicate entity id: {entity.id!r}")
        seen.add(entity.id)
        if entity.is_active:
            active.append(entity)
    return active


def _delta(entity_id: str, bps: int, previous: Mapping[str, int]) -> int | None:
    if entity_id not in previous:
        return None
    return bps - previous[entity_id]


def compute_snapshots(
    entities: Sequence[Entity],
    items: Iterable[TextItem],
    window: Window,
    as_of: datetime,
    *,
    config: MindshareConfig,
    signals: Mapping[str, ExternalSignal] | None = None,
    store: SnapshotSink | None = None,
) -> SnapshotResult:
    """Compute (and optionally persist) one window's mindshare allocation."""
    as_of_date = _as_utc(as_of).date()
    signals = signals or {}
    logger.info("Computing snapshots [window=%s, as_of=%s]", window, as_of_date)

    active = _active_entities(entities)
    result = SnapshotResult(
        window=window, as_of_date=as_of_date, total_entities=len(active)
    )
    if not active:
        logger.info("No active entities; nothing to compute.")
        return result

    # ── 1. Window + attribution ───────────────────────────────────────
    windowed = in_window(items, window, as_of)
    patterns = build_patterns(active)
    matched = filter_relevant(match_items(windowed, patterns))

    # ── 2. Aggregate ──────────────────────────────────────────────────
    metrics = aggregate(matched, config)

    # ── 3. Score ──────────────────────────────────────────────────────
    attention: dict[str, float] = {}
    for entity in active:
        base = signals.get(entity.id) or ExternalSignal()
        signal = base.model_copy(
            update={"keyword_match_strength": keyword_match_strength(entity, config)}
        )
        attention[entity.id] = score(
            metrics.get(entity.id, AggregatedMetrics()), signal, config
        )

    # ── 4. Normalise ──────────────────────────────────────────────────
    allocation = normalize(attention)
    result.attention = attention
    result.allocation = allocation

    # ── 5. Deltas against prior snapshots ─────────────────────────────
    prev_1d: dict[str, int] = {}
    prev_7d: dict[str, int] = {}
    existing: set[str] = set()
    if store is not None:
        try:
            prev_1d = store.allocation_on(window, as_of_date - timedelta(days=1))
            prev_7d = store.allocation_on(window, as_of_date - timedelta(days=7))
            existing = store.existing_ids(window, as_of_date)
        except Exception as exc:
            logger.exception("Failed to read prior snapshots [window=%s]", window)
            result.errors.append(f"Failed to read prior snapshots: {exc}")
            prev_1d, prev_7d, existing = {}, {}, set()

    result.snapshots = [
        MindshareSnapshot(
            entity_id=entity_id,
            window=window,
            as_of_date=as_of_date,
            mindshare_bps=bps,
            attention_value=attention[entity_id],
            delta_bps_1d=_delta(entity_id, bps, prev_1d),
            delta_bps_7d=_delta(entity_id, bps, prev_7d),
            metrics=metrics.get(entity_id, AggregatedMetrics()),
        )
        for entity_id, bps in allocation.items()
    ]

    # ── 6. Persist ────────────────────────────────────────────────────
    if store is not None:
        try:
            store.upsert_many(result.snapshots)
        except Exception as exc:
            logger.exception("Failed to persist snapshots [window=%s]", window)
            result.errors.append(f"Failed to upsert snapshots: {exc}")
        else:
            result.snapshots_updated = sum(
                1 for s in result.snapshots if s.entity_id in existing
            )
            result.snapshots_created = len(result.snapshots) - result.snapshots_updated

    logger.info(
        "Completed [window=%s]: %d entities, created=%d, updated=%d, errors=%d",
        window,
        len(allocation),
        result.snapshots_created,
        result.snapshots_updated,
        len(result.errors),
    )
    return result


def compute_all_windows(
    entities: Sequence[Entity],
    items: Sequence[TextItem],
    as_of: datetime,
    *,
    config: MindshareConfig,
    signals: Mapping[str, ExternalSignal] | None = None,
    store: SnapshotSink | None = None,
    windows: Iterable[Window] = tuple(Window),
) -> list[SnapshotResult]:
    """Run :func:`compute_snapshots` for each window in turn."""
    return [
        compute_snapshots(
            entities,
            items,
            window,
            as_of,
            config=config,
            signals=signals,
            store=store,
        )
        for window in windows
    ]
