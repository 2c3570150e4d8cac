"""JSON-lines tweet corpus: one TextItem per line."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from mindshare.models import TextItem

logger = logging.getLogger(__name__)


def load_items(path: Path) -> list[TextItem]:
    """Read a corpus file, skipping blank lines and lines that fail validation."""
    items: list[TextItem] = []
    skipped = 0
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                items.append(TextItem.model_validate_json(line))
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "%s:%d: invalid item (%d errors)", path, lineno, exc.error_count()
                )
    logger.info("Loaded %d items from %s (skipped %d)", len(items), path, skipped)
    return items


def write_items(items: Iterable[TextItem], path: Path) -> int:
    """Write items to *path*, replacing it; return the count written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w", encoding="utf-8") as fh:
        for item in items:
            fh.write(item.model_dump_json(exclude_none=True))
            fh.write("\n")
            count += 1
    logger.info("Wrote %d items to %s", count, path)
    return count
