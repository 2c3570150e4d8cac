"""Per-user "projects you amplify" ranking.

Scores how much one account's own tweets push each tracked entity. This is
separate from mindshare: it uses raw counts, not log damping, and its own
engagement weights.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from mindshare.config import MindshareConfig
from mindshare.matcher import PatternSet, match_items
from mindshare.models import AmplifiedEntity, TextItem

logger = logging.getLogger(__name__)


def value_score(
    tweet_count: int,
    likes: int,
    replies: int,
    retweets: int,
    config: MindshareConfig,
) -> float:
    return (
        tweet_count * config.value_tweet_weight
        + likes * config.value_like_weight
        + replies * config.value_reply_weight
        + retweets * config.value_retweet_weight
    )


def rank_amplified(
    tweets: Iterable[TextItem],
    patterns: PatternSet,
    config: MindshareConfig,
) -> list[AmplifiedEntity]:
    """Match a user's tweets to entities and rank entities by value score.

    Ties are ordered by entity id.
    """
    totals: dict[str, AmplifiedEntity] = {}
    for m in match_items(tweets, patterns):
        for entity in m.entities:
            row = totals.setdefault(entity.id, AmplifiedEntity(entity_id=entity.id))
            row.tweet_count += 1
            row.likes += m.item.like_count
            row.replies += m.item.reply_count
            row.retweets += m.item.retweet_count

    for row in totals.values():
        row.value_score = value_score(
            row.tweet_count, row.likes, row.replies, row.retweets, config
        )

    ranked = sorted(totals.values(), key=lambda r: (-r.value_score, r.entity_id))
    logger.info(
        "Ranked %d amplified entities; top score=%.1f",
        len(ranked),
        ranked[0].value_score if ranked else 0,
    )
    return ranked
