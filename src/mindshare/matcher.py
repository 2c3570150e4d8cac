"""Attribute tweets to tracked entities by @mention, bare handle, or cashtag."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from mindshare.models import Entity, MatchedItem, TextItem

logger = logging.getLogger(__name__)

# Handles and short names at or under this length are treated as likely tickers
_SHORT_TOKEN_MAX = 10


@dataclass
class PatternSet:
    """Compiled match rules, one per unique pattern string.

    ``targets`` maps the pattern source to every entity that produced it, so a
    generic ticker shared by many entities is evaluated once.
    """

    targets: dict[str, list[Entity]] = field(default_factory=dict)
    compiled: dict[str, re.Pattern[str]] = field(default_factory=dict)

    def add(self, source: str, entity: Entity) -> None:
        entities = self.targets.get(source)
        if entities is None:
            self.targets[source] = [entity]
            self.compiled[source] = re.compile(source, re.IGNORECASE)
        elif all(e.id != entity.id for e in entities):
            entities.append(entity)

    def __len__(self) -> int:
        return len(self.targets)


def build_patterns(entities: Iterable[Entity]) -> PatternSet:
    """Build match rules for every entity.

    Per entity:
    1. ``@handle`` mention → always
    2. bare ``handle`` → only when the handle is short (likely a ticker)
    3. ``$SHORTNAME`` cashtag → only when a short name exists, is short,
       and differs from the handle
    """
    patterns = PatternSet()
    skipped = 0

    for entity in entities:
        handle = entity.handle.lower()
        if not handle:
            skipped += 1
            logger.warning("Entity %s has no handle; skipping pattern build", entity.id)
            continue

        escaped = re.escape(handle)
        patterns.add(rf"@{escaped}\b", entity)

        if len(handle) <= _SHORT_TOKEN_MAX:
            patterns.add(rf"\b{escaped}\b", entity)

        name = (entity.short_name or "").strip().lower()
        if name and len(name) <= _SHORT_TOKEN_MAX and name != handle:
            patterns.add(rf"\${re.escape(name)}\b", entity)

    logger.info(
        "Built %d match patterns (%d entities skipped)", len(patterns), skipped
    )
    return patterns


def match(text: str, patterns: PatternSet) -> list[Entity]:
    """Return the entities mentioned in *text*, each once, in first-match order."""
    text_lower = text.lower()
    seen: set[str] = set()
    results: list[Entity] = []

    for source, regex in patterns.compiled.items():
        if not regex.search(text_lower):
            continue
        for entity in patterns.targets[source]:
            if entity.id not in seen:
                seen.add(entity.id)
                results.append(entity)

    return results


def match_items(items: Iterable[TextItem], patterns: PatternSet) -> list[MatchedItem]:
    """Match every item; items that mention no entity are dropped."""
    matched: list[MatchedItem] = []
    total = 0
    for item in items:
        total += 1
        entities = match(item.text, patterns)
        if entities:
            matched.append(MatchedItem(item=item, entities=entities))
    logger.info("Matched %d of %d items to at least one entity", len(matched), total)
    return matched


def is_relevant(text: str, keywords: Iterable[str]) -> bool:
    """Return True if *text* contains any keyword (case-insensitive).

    An empty keyword list accepts everything.
    """
    kws = [kw.lower() for kw in keywords if kw]
    if not kws:
        return True
    text_lower = text.lower()
    return any(kw in text_lower for kw in kws)
