"""Roll matched tweets up into per-entity volume, reach and engagement counts."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from mindshare.config import MindshareConfig
from mindshare.models import AggregatedMetrics, MatchedItem, TextItem

logger = logging.getLogger(__name__)

NEUTRAL_SENTIMENT = 50.0


@dataclass
class _Accumulator:
    post_count: int = 0
    engagement_total: int = 0
    authors: set[str] = field(default_factory=set)
    sentiments: list[float] = field(default_factory=list)

    def finalize(self) -> AggregatedMetrics:
        avg = (
            sum(self.sentiments) / len(self.sentiments)
            if self.sentiments
            else NEUTRAL_SENTIMENT
        )
        return AggregatedMetrics(
            post_count=self.post_count,
            unique_author_count=len(self.authors),
            engagement_total=self.engagement_total,
            avg_sentiment=avg,
        )


def engagement(item: TextItem, config: MindshareConfig) -> int:
    """Weighted engagement contribution of one tweet."""
    return (
        item.like_count * config.like_weight
        + item.reply_count * config.reply_weight
        + item.retweet_count * config.retweet_weight
    )


def aggregate(
    matched: Iterable[MatchedItem],
    config: MindshareConfig,
) -> dict[str, AggregatedMetrics]:
    """Aggregate matched items per entity id.

    Entities that no item matched are absent from the result; callers default
    them to zero counts and neutral sentiment.
    """
    acc: dict[str, _Accumulator] = {}

    for m in matched:
        item = m.item
        weight = engagement(item, config)
        author = item.author_handle.strip().lstrip("@").lower()
        for entity_id in dict.fromkeys(e.id for e in m.entities):
            a = acc.setdefault(entity_id, _Accumulator())
            a.post_count += 1
            a.engagement_total += weight
            if author:
                a.authors.add(author)
            if item.sentiment_score is not None:
                a.sentiments.append(item.sentiment_score)

    metrics = {entity_id: a.finalize() for entity_id, a in acc.items()}
    logger.debug("Aggregated metrics for %d entities", len(metrics))
    return metrics
