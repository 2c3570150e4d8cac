"""Attention value: log-dampened activity score times bounded quality multipliers."""

from __future__ import annotations

import logging
import math

from mindshare.config import MindshareConfig
from mindshare.models import AggregatedMetrics, ExternalSignal, QualityFactors

logger = logging.getLogger(__name__)


def clamp(value: float, floor: float, cap: float) -> float:
    return max(floor, min(cap, value))


def sentiment_multiplier(avg_sentiment: float, config: MindshareConfig) -> float:
    """Map a 0-100 sentiment average onto ``[sentiment_floor, sentiment_cap]``.

    Neutral or worse sits on the floor; above neutral rises linearly to the
    cap at 100.
    """
    floor, cap = config.sentiment_floor, config.sentiment_cap
    if avg_sentiment <= 50:
        raw = floor
    else:
        raw = floor + ((avg_sentiment - 50) / 50) * (cap - floor)
    return clamp(raw, floor, cap)


def quality_multiplier(quality: QualityFactors, config: MindshareConfig) -> float:
    """Product of the available quality factors, each clamped to its own band.

    A missing factor contributes 1.0.
    """
    factors: list[float] = []
    if quality.creator_organic is not None:
        factors.append(
            clamp(
                quality.creator_organic / 100,
                config.creator_organic_floor,
                config.creator_organic_cap,
            )
        )
    if quality.audience_organic is not None:
        factors.append(
            clamp(
                quality.audience_organic / 100,
                config.audience_organic_floor,
                config.audience_organic_cap,
            )
        )
    if quality.originality is not None:
        factors.append(
            clamp(
                quality.originality / 100,
                config.originality_floor,
                config.originality_cap,
            )
        )
    if quality.smart_followers_boost is not None:
        factors.append(
            clamp(
                quality.smart_followers_boost,
                config.smart_followers_floor,
                config.smart_followers_cap,
            )
        )
    return math.prod(factors)


def core_score(
    metrics: AggregatedMetrics,
    heat_norm: float | None,
    config: MindshareConfig,
) -> float:
    """Weighted sum of log1p-damped counts plus normalised CT heat."""
    heat = (heat_norm or 0.0) / 100
    return (
        config.w1_posts * math.log1p(metrics.post_count)
        + config.w2_creators * math.log1p(metrics.unique_author_count)
        + config.w3_engagement * math.log1p(metrics.engagement_total)
        + config.w4_ct_heat * heat
    )


def score(
    metrics: AggregatedMetrics,
    signal: ExternalSignal,
    config: MindshareConfig,
) -> float:
    """Compute the non-negative attention value for one entity in one window."""
    core = core_score(metrics, signal.heat_norm, config)
    attention = (
        core
        * sentiment_multiplier(metrics.avg_sentiment, config)
        * quality_multiplier(signal.quality, config)
        * signal.keyword_match_strength
    )
    return max(0.0, attention)
