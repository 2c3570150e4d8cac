"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()

logger = logging.getLogger(__name__)

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# ── X API ──────────────────────────────────────────────────────────────────
X_BEARER_TOKEN: str = os.getenv("X_BEARER_TOKEN", "")
MAX_RESULTS: int = int(os.getenv("MINDSHARE_MAX_RESULTS", "100"))

# ── Storage defaults (overridden at runtime by CLI) ───────────────────────
DB_PATH: Path = Path(
    os.getenv("MINDSHARE_DB_PATH", str(PROJECT_ROOT / "var" / "mindshare.sqlite3"))
)


class MindshareConfig(BaseModel):
    """Tunables for matching, aggregation and scoring.

    Built once at startup and passed explicitly into each component.
    """

    model_config = ConfigDict(frozen=True)

    # Core weights (log-scaled inputs)
    w1_posts: float = 0.25
    w2_creators: float = 0.25
    w3_engagement: float = 0.30
    w4_ct_heat: float = 0.20

    # Quality multiplier floors and caps
    sentiment_floor: float = 0.8
    sentiment_cap: float = 1.2
    creator_organic_floor: float = 0.5
    creator_organic_cap: float = 1.5
    audience_organic_floor: float = 0.5
    audience_organic_cap: float = 1.5
    originality_floor: float = 0.7
    originality_cap: float = 1.3
    smart_followers_floor: float = 1.0
    smart_followers_cap: float = 1.5

    # Applied when an entity has no relevance keywords to filter noise with
    keyword_penalty: float = 0.8

    # Engagement weighting for the mindshare engagement total
    like_weight: int = 1
    reply_weight: int = 2
    retweet_weight: int = 3

    # "Projects you amplify" value score
    value_tweet_weight: int = 10
    value_like_weight: int = 1
    value_reply_weight: int = 3
    value_retweet_weight: int = 2


# Environment variable → MindshareConfig field
_ENV_FIELDS: dict[str, str] = {
    "MINDSHARE_W1_POSTS": "w1_posts",
    "MINDSHARE_W2_CREATORS": "w2_creators",
    "MINDSHARE_W3_ENGAGEMENT": "w3_engagement",
    "MINDSHARE_W4_CT_HEAT": "w4_ct_heat",
    "MINDSHARE_SENTIMENT_FLOOR": "sentiment_floor",
    "MINDSHARE_SENTIMENT_CAP": "sentiment_cap",
    "MINDSHARE_CREATOR_ORG_FLOOR": "creator_organic_floor",
    "MINDSHARE_CREATOR_ORG_CAP": "creator_organic_cap",
    "MINDSHARE_AUDIENCE_ORG_FLOOR": "audience_organic_floor",
    "MINDSHARE_AUDIENCE_ORG_CAP": "audience_organic_cap",
    "MINDSHARE_ORIGINALITY_FLOOR": "originality_floor",
    "MINDSHARE_ORIGINALITY_CAP": "originality_cap",
    "MINDSHARE_SMART_FOLLOWERS_FLOOR": "smart_followers_floor",
    "MINDSHARE_SMART_FOLLOWERS_CAP": "smart_followers_cap",
    "MINDSHARE_KEYWORD_PENALTY": "keyword_penalty",
    "MINDSHARE_LIKE_WEIGHT": "like_weight",
    "MINDSHARE_REPLY_WEIGHT": "reply_weight",
    "MINDSHARE_RETWEET_WEIGHT": "retweet_weight",
}


def load_mindshare_config(environ: Mapping[str, str] | None = None) -> MindshareConfig:
    """Build a :class:`MindshareConfig` from ``MINDSHARE_*`` variables.

    Unset or unparseable values keep their defaults.
    """
    env = os.environ if environ is None else environ
    fields = MindshareConfig.model_fields
    overrides: dict[str, float | int] = {}

    for var, name in _ENV_FIELDS.items():
        raw = env.get(var, "").strip()
        if not raw:
            continue
        cast = type(fields[name].default)
        try:
            overrides[name] = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r; not a valid %s", var, raw, cast.__name__)

    return MindshareConfig(**overrides)
