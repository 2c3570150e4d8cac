"""Load the tracked-entity catalog and build X query strings for it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mindshare.errors import InputContractViolation
from mindshare.models import Entity, ExternalSignal, QualityFactors

logger = logging.getLogger(__name__)

# X Recent Search query length limit on Basic tier
_MAX_QUERY_CHARS = 512
_DEFAULT_FILTERS = "-is:retweet lang:en"


@dataclass
class Catalog:
    entities: list[Entity] = field(default_factory=list)
    signals: dict[str, ExternalSignal] = field(default_factory=dict)


def load_catalog(catalog_path: Path) -> Catalog:
    """Parse a catalog YAML file.

    Layout::

        entities:
          - id: p1
            handle: someproject
            short_name: SOME
            keywords: [some, someproject]
            is_active: true
            heat: 42            # CT heat, 0-100
            quality:
              creator_organic: 75
              audience_organic: 70
              originality: 80
              smart_followers_boost: 1.1

    Entries that fail validation are logged and skipped. Duplicate ids raise
    :class:`InputContractViolation`.
    """
    with open(catalog_path) as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    catalog = Catalog()
    raw_entities: list[dict[str, Any]] = cfg.get("entities", []) or []

    for idx, raw in enumerate(raw_entities):
        raw = dict(raw)
        heat = raw.pop("heat", None)
        quality = raw.pop("quality", None) or {}
        if "id" in raw:
            raw["id"] = str(raw["id"])
        try:
            entity = Entity.model_validate(raw)
            signal = ExternalSignal(
                heat_norm=heat,
                quality=QualityFactors.model_validate(quality),
            )
        except ValidationError as exc:
            logger.warning("Skipping catalog entry #%d: %s", idx, exc)
            continue

        if entity.id in catalog.signals:
            raise InputContractViolation(
                f"duplicate entity id in catalog: {entity.id!r}"
            )
        catalog.entities.append(entity)
        catalog.signals[entity.id] = signal

    logger.info("Loaded %d entities from %s", len(catalog.entities), catalog_path)
    return catalog


def _entity_terms(entity: Entity) -> list[str]:
    if not entity.handle:
        return []
    terms = [f"@{entity.handle}"]
    name = (entity.short_name or "").strip()
    if name and len(name) <= 10 and name.lower() != entity.handle.lower():
        terms.append(f"${name}")
    return terms


def _rebuild_query(terms: list[str], filters: str) -> str:
    return f"({' OR '.join(terms)}) {filters}".strip()


def build_queries(
    entities: list[Entity],
    filters: str = _DEFAULT_FILTERS,
) -> list[str]:
    """Pack entity mention terms into as few queries as the length limit allows.

    Terms for one entity are never split across queries. An entity whose terms
    alone exceed the limit is skipped with a warning.
    """
    queries: list[str] = []
    current: list[str] = []

    for entity in entities:
        if not entity.is_active:
            continue
        terms = _entity_terms(entity)
        if not terms:
            continue
        if len(_rebuild_query(terms, filters)) > _MAX_QUERY_CHARS:
            logger.warning(
                "Terms for '%s' exceed %d chars; skipping entity.",
                entity.id,
                _MAX_QUERY_CHARS,
            )
            continue
        if current and len(_rebuild_query(current + terms, filters)) > _MAX_QUERY_CHARS:
            queries.append(_rebuild_query(current, filters))
            current = []
        current.extend(terms)

    if current:
        queries.append(_rebuild_query(current, filters))

    for q in queries:
        logger.debug("Query: %s", q)
    return queries
