"""Tests for snapshot orchestration across windows."""

import sqlite3
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest

from mindshare.config import MindshareConfig
from mindshare.errors import InputContractViolation
from mindshare.models import Entity, ExternalSignal, MindshareSnapshot, TextItem, Window
from mindshare.snapshot import (
    compute_all_windows,
    compute_snapshots,
    in_window,
    keyword_match_strength,
)
from mindshare.store import SnapshotStore

CONFIG = MindshareConfig()
AS_OF = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)

AKARI = Entity(id="1", handle="akari")
BETA = Entity(id="2", handle="beta", keywords=["launch"])
GAMMA = Entity(id="3", handle="gamma", is_active=False)
ENTITIES = [AKARI, BETA, GAMMA]


def _make(
    text: str, hours_ago: float, author: str = "alice", likes: int = 0
) -> TextItem:
    return TextItem(
        author_handle=author,
        text=text,
        like_count=likes,
        created_at=AS_OF - timedelta(hours=hours_ago),
    )


ITEMS = [
    _make("@akari gm", 2, likes=5),
    _make("@beta launch soon", 3, author="bob"),
    _make("@beta gm", 4),  # no "launch" keyword → not attributed to beta
    _make("@akari older news", 72),
    _make("@gamma is inactive", 1),
]


class _FailingStore:
    def existing_ids(self, window: Window, as_of_date: date) -> set[str]:
        return set()

    def allocation_on(self, window: Window, as_of_date: date) -> dict[str, int]:
        return {}

    def upsert_many(self, snapshots: Iterable[MindshareSnapshot]) -> int:
        raise sqlite3.OperationalError("database is locked")


class _UnreadableStore:
    def __init__(self) -> None:
        self.written: list[MindshareSnapshot] = []

    def existing_ids(self, window: Window, as_of_date: date) -> set[str]:
        return set()

    def allocation_on(self, window: Window, as_of_date: date) -> dict[str, int]:
        raise sqlite3.OperationalError("database is locked")

    def upsert_many(self, snapshots: Iterable[MindshareSnapshot]) -> int:
        self.written = list(snapshots)
        return len(self.written)


class TestInWindow:
    def test_bounds(self) -> None:
        kept = in_window(ITEMS, Window.H24, AS_OF)
        assert len(kept) == 4

    def test_naive_timestamps_treated_as_utc(self) -> None:
        item = TextItem(text="x", created_at=datetime(2026, 10, 18, 11, 0))
        assert in_window([item], Window.H24, AS_OF) == [item]

    def test_future_items_excluded(self) -> None:
        assert in_window([_make("x", -1)], Window.D30, AS_OF) == []


class TestComputeSnapshots:
    def test_allocation_covers_active_entities(self) -> None:
        result = compute_snapshots(ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG)
        assert set(result.allocation) == {"1", "2"}
        assert sum(result.allocation.values()) == 10_000
        assert result.total_entities == 2
        assert result.as_of_date == date(2026, 10, 18)

    def test_keyword_filter_and_window(self) -> None:
        result = compute_snapshots(ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG)
        by_id = {s.entity_id: s for s in result.snapshots}
        assert by_id["1"].metrics.post_count == 1
        assert by_id["2"].metrics.post_count == 1

        weekly = compute_snapshots(ENTITIES, ITEMS, Window.D7, AS_OF, config=CONFIG)
        by_id = {s.entity_id: s for s in weekly.snapshots}
        assert by_id["1"].metrics.post_count == 2

    def test_attention_reported(self) -> None:
        result = compute_snapshots(ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG)
        assert set(result.attention) == {"1", "2"}
        assert all(v > 0 for v in result.attention.values())

    def test_signals_raise_attention(self) -> None:
        plain = compute_snapshots(ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG)
        heated = compute_snapshots(
            ENTITIES,
            ITEMS,
            Window.H24,
            AS_OF,
            config=CONFIG,
            signals={"1": ExternalSignal(heat_norm=100)},
        )
        assert heated.attention["1"] > plain.attention["1"]
        assert heated.allocation["1"] > plain.allocation["1"]

    def test_no_activity_splits_evenly(self) -> None:
        result = compute_snapshots(ENTITIES, [], Window.H24, AS_OF, config=CONFIG)
        assert result.allocation == {"1": 5000, "2": 5000}

    def test_no_active_entities(self) -> None:
        result = compute_snapshots([GAMMA], ITEMS, Window.H24, AS_OF, config=CONFIG)
        assert result.allocation == {}
        assert result.snapshots == []
        assert result.total_entities == 0

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(InputContractViolation):
            compute_snapshots(
                [AKARI, Entity(id="1", handle="other")],
                ITEMS,
                Window.H24,
                AS_OF,
                config=CONFIG,
            )

    def test_without_store_counts_nothing(self) -> None:
        result = compute_snapshots(ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG)
        assert result.snapshots_created == 0
        assert result.snapshots_updated == 0
        assert len(result.snapshots) == 2


class TestPersistence:
    def test_created_then_updated(self, tmp_path: Path) -> None:
        store = SnapshotStore(db_path=tmp_path / "ms.sqlite3")
        first = compute_snapshots(
            ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG, store=store
        )
        assert (first.snapshots_created, first.snapshots_updated) == (2, 0)

        again = compute_snapshots(
            ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG, store=store
        )
        assert (again.snapshots_created, again.snapshots_updated) == (0, 2)
        assert store.allocation_on(Window.H24, date(2026, 10, 18)) == again.allocation

    def test_deltas_against_previous_day(self, tmp_path: Path) -> None:
        store = SnapshotStore(db_path=tmp_path / "ms.sqlite3")
        yesterday = compute_snapshots(
            ENTITIES,
            ITEMS,
            Window.D7,
            AS_OF - timedelta(days=1),
            config=CONFIG,
            store=store,
        )
        today = compute_snapshots(
            ENTITIES, ITEMS, Window.D7, AS_OF, config=CONFIG, store=store
        )
        for snap in today.snapshots:
            before = yesterday.allocation[snap.entity_id]
            assert snap.delta_bps_1d == today.allocation[snap.entity_id] - before
            assert snap.delta_bps_7d is None

    def test_store_failure_recorded(self) -> None:
        result = compute_snapshots(
            ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG, store=_FailingStore()
        )
        assert len(result.errors) == 1
        assert "database is locked" in result.errors[0]
        assert result.snapshots_created == 0
        assert sum(result.allocation.values()) == 10_000

    def test_read_failure_recorded(self) -> None:
        store = _UnreadableStore()
        result = compute_snapshots(
            ENTITIES, ITEMS, Window.H24, AS_OF, config=CONFIG, store=store
        )
        assert len(result.errors) == 1
        assert "Failed to read prior snapshots" in result.errors[0]
        assert sum(result.allocation.values()) == 10_000
        assert all(s.delta_bps_1d is None for s in result.snapshots)
        assert len(store.written) == 2
        assert result.snapshots_created == 2


class TestKeywordStrength:
    def test_with_keywords(self) -> None:
        assert keyword_match_strength(BETA, CONFIG) == 1.0

    def test_penalty_without_keywords(self) -> None:
        assert keyword_match_strength(AKARI, CONFIG) == 0.8


class TestComputeAllWindows:
    def test_every_window_in_order(self) -> None:
        results = compute_all_windows(ENTITIES, ITEMS, AS_OF, config=CONFIG)
        assert [r.window for r in results] == [
            Window.H24,
            Window.H48,
            Window.D7,
            Window.D30,
        ]
        for r in results:
            assert sum(r.allocation.values()) == 10_000
