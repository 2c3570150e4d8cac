"""SQLite-backed mindshare snapshot store."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path

from mindshare.models import MindshareSnapshot, Window

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS mindshare_snapshots (
    entity_id       TEXT NOT NULL,
    time_window     TEXT NOT NULL,
    as_of_date      TEXT NOT NULL,
    mindshare_bps   INTEGER NOT NULL,
    attention_value REAL NOT NULL DEFAULT 0.0,
    delta_bps_1d    INTEGER,
    delta_bps_7d    INTEGER,
    metrics         TEXT NOT NULL DEFAULT '{}',
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (entity_id, time_window, as_of_date)
);
"""

_UPSERT = """
INSERT INTO mindshare_snapshots
    (entity_id, time_window, as_of_date, mindshare_bps, attention_value,
     delta_bps_1d, delta_bps_7d, metrics, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (entity_id, time_window, as_of_date) DO UPDATE SET
    mindshare_bps   = excluded.mindshare_bps,
    attention_value = excluded.attention_value,
    delta_bps_1d    = excluded.delta_bps_1d,
    delta_bps_7d    = excluded.delta_bps_7d,
    metrics         = excluded.metrics,
    updated_at      = excluded.updated_at
"""


class SnapshotStore:
    """One row per (entity, window, as-of date), overwritten on recompute."""

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    # ── public ──────────────────────────────────────────────────────────

    def existing_ids(self, window: Window, as_of_date: date) -> set[str]:
        """Return entity ids that already have a snapshot for this window/date."""
        con = self._connect()
        try:
            cur = con.execute(
                "SELECT entity_id FROM mindshare_snapshots "
                "WHERE time_window = ? AND as_of_date = ?",
                (window.value, as_of_date.isoformat()),
            )
            return {row[0] for row in cur.fetchall()}
        finally:
            con.close()

    def allocation_on(self, window: Window, as_of_date: date) -> dict[str, int]:
        """Return the stored entity id → bps mapping for one window/date."""
        con = self._connect()
        try:
            cur = con.execute(
                "SELECT entity_id, mindshare_bps FROM mindshare_snapshots "
                "WHERE time_window = ? AND as_of_date = ?",
                (window.value, as_of_date.isoformat()),
            )
            return {row[0]: row[1] for row in cur.fetchall()}
        finally:
            con.close()

    def upsert_many(self, snapshots: Iterable[MindshareSnapshot]) -> int:
        """Insert or replace snapshots; return the number of rows written."""
        now = datetime.now(UTC).isoformat()
        rows = [
            (
                s.entity_id,
                s.window.value,
                s.as_of_date.isoformat(),
                s.mindshare_bps,
                s.attention_value,
                s.delta_bps_1d,
                s.delta_bps_7d,
                json.dumps(s.metrics.model_dump()),
                now,
            )
            for s in snapshots
        ]
        if not rows:
            return 0
        con = self._connect()
        try:
            con.executemany(_UPSERT, rows)
            con.commit()
        finally:
            con.close()
        logger.debug("Upserted %d snapshot rows", len(rows))
        return len(rows)

    def load(self, window: Window, as_of_date: date) -> list[MindshareSnapshot]:
        """Return stored snapshots for one window/date, highest bps first."""
        con = self._connect()
        try:
            cur = con.execute(
                "SELECT entity_id, mindshare_bps, attention_value, delta_bps_1d, "
                "delta_bps_7d, metrics FROM mindshare_snapshots "
                "WHERE time_window = ? AND as_of_date = ? "
                "ORDER BY mindshare_bps DESC, entity_id",
                (window.value, as_of_date.isoformat()),
            )
            rows = cur.fetchall()
        finally:
            con.close()
        return [
            MindshareSnapshot(
                entity_id=entity_id,
                window=window,
                as_of_date=as_of_date,
                mindshare_bps=bps,
                attention_value=attention,
                delta_bps_1d=d1,
                delta_bps_7d=d7,
                metrics=json.loads(metrics),
            )
            for entity_id, bps, attention, d1, d7, metrics in rows
        ]

    # ── private ─────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._db_path))

    def _init_db(self) -> None:
        con = self._connect()
        con.executescript(_SCHEMA)
        con.close()
