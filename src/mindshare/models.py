"""Domain models used across the mindshare pipeline."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Window(StrEnum):
    """Lookback period a snapshot aggregates over."""

    H24 = "24h"
    H48 = "48h"
    D7 = "7d"
    D30 = "30d"

    @property
    def delta(self) -> timedelta:
        return _WINDOW_DELTAS[self]


_WINDOW_DELTAS: dict[Window, timedelta] = {
    Window.H24: timedelta(hours=24),
    Window.H48: timedelta(hours=48),
    Window.D7: timedelta(days=7),
    Window.D30: timedelta(days=30),
}


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    handle: str = ""
    short_name: str | None = None
    keywords: tuple[str, ...] = ()
    is_active: bool = True

    @field_validator("handle")
    @classmethod
    def _strip_at(cls, v: str) -> str:
        # Catalogs sometimes carry the leading "@".
        return v.strip().lstrip("@")

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalise_keywords(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(str(k).strip().lower() for k in v if str(k).strip())


class TextItem(BaseModel):
    author_handle: str = ""
    text: str
    like_count: int = Field(default=0, ge=0)
    reply_count: int = Field(default=0, ge=0)
    retweet_count: int = Field(default=0, ge=0)
    created_at: datetime
    sentiment_score: float | None = Field(default=None, ge=0.0, le=100.0)
    tweet_id: str | None = None


class MatchedItem(BaseModel):
    item: TextItem
    entities: list[Entity] = Field(default_factory=list)


class AggregatedMetrics(BaseModel):
    post_count: int = Field(default=0, ge=0)
    unique_author_count: int = Field(default=0, ge=0)
    engagement_total: int = Field(default=0, ge=0)
    avg_sentiment: float = 50.0

    @model_validator(mode="after")
    def _authors_within_posts(self) -> AggregatedMetrics:
        if self.unique_author_count > self.post_count:
            raise ValueError("unique_author_count cannot exceed post_count")
        return self


class QualityFactors(BaseModel):
    """Secondary quality signals. ``None`` means the signal is unavailable."""

    creator_organic: float | None = None  # 0-100
    audience_organic: float | None = None  # 0-100
    originality: float | None = None  # 0-100
    smart_followers_boost: float | None = None  # raw multiplier


class ExternalSignal(BaseModel):
    heat_norm: float | None = Field(default=None, ge=0.0, le=100.0)
    quality: QualityFactors = Field(default_factory=QualityFactors)
    keyword_match_strength: float = Field(default=1.0, ge=0.0, le=1.0)


class MindshareSnapshot(BaseModel):
    entity_id: str
    window: Window
    as_of_date: date
    mindshare_bps: int = Field(ge=0, le=10_000)
    attention_value: float = Field(ge=0.0)
    delta_bps_1d: int | None = None
    delta_bps_7d: int | None = None
    metrics: AggregatedMetrics = Field(default_factory=AggregatedMetrics)


class SnapshotResult(BaseModel):
    window: Window
    as_of_date: date
    total_entities: int = 0
    snapshots_created: int = 0
    snapshots_updated: int = 0
    errors: list[str] = Field(default_factory=list)
    allocation: dict[str, int] = Field(default_factory=dict)
    attention: dict[str, float] = Field(default_factory=dict)
    snapshots: list[MindshareSnapshot] = Field(default_factory=list)


class AmplifiedEntity(BaseModel):
    entity_id: str
    tweet_count: int = 0
    likes: int = 0
    replies: int = 0
    retweets: int = 0
    value_score: float = 0.0
