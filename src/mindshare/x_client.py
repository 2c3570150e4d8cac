"""Minimal X API v2 Recent Search client (read-only)."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from mindshare.models import TextItem

logger = logging.getLogger(__name__)

_RECENT_SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"

# Fields we always request.
_TWEET_FIELDS = "created_at,public_metrics,author_id"
_EXPANSIONS = "author_id"
_USER_FIELDS = "username"


class XClientError(Exception):
    """Raised when the X API returns an unexpected response."""


class XClient:
    """Thin wrapper around ``GET /2/tweets/search/recent``."""

    def __init__(
        self,
        bearer_token: str,
        max_results: int = 100,
        pause_seconds: float = 1.0,
    ) -> None:
        if not bearer_token:
            raise ValueError("X_BEARER_TOKEN is required but was empty.")
        self._bearer = bearer_token
        self._max_results = min(max(max_results, 10), 100)
        self._pause = pause_seconds
        self._session = requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {self._bearer}"})

    # ── public ──────────────────────────────────────────────────────────
    def search_recent(self, query: str) -> list[TextItem]:
        """Execute a single Recent Search query and return parsed items."""
        params: dict[str, Any] = {
            "query": query,
            "max_results": self._max_results,
            "tweet.fields": _TWEET_FIELDS,
            "expansions": _EXPANSIONS,
            "user.fields": _USER_FIELDS,
        }

        data = self._get(params)
        tweets_raw: list[dict[str, Any]] = data.get("data", [])
        if not tweets_raw:
            logger.info("No results for query: %s", query)
            return []

        # Build author-id → username map from expansions
        includes = data.get("includes", {})
        users: list[dict[str, Any]] = includes.get("users", [])
        author_map: dict[str, str] = {u["id"]: u.get("username", "") for u in users}

        items: list[TextItem] = []
        for raw in tweets_raw:
            if not raw.get("created_at"):
                logger.debug("Dropping tweet %s without created_at", raw.get("id"))
                continue
            pm = raw.get("public_metrics", {})
            items.append(
                TextItem(
                    tweet_id=str(raw["id"]),
                    text=raw.get("text", ""),
                    author_handle=author_map.get(str(raw.get("author_id", "")), ""),
                    created_at=raw["created_at"],
                    like_count=pm.get("like_count", 0),
                    reply_count=pm.get("reply_count", 0),
                    retweet_count=pm.get("retweet_count", 0),
                )
            )

        logger.info("Fetched %d tweets for query: %s", len(items), query)
        return items

    def fetch_all(self, queries: list[str]) -> list[TextItem]:
        """Run every query and return the union of results, one item per tweet id."""
        seen: set[str] = set()
        results: list[TextItem] = []
        for i, query in enumerate(queries):
            if i:
                # Polite back-off between queries (X rate limits)
                time.sleep(self._pause)
            for item in self.search_recent(query):
                # A tweet mentioning entities from two query chunks comes back twice
                if item.tweet_id is not None:
                    if item.tweet_id in seen:
                        continue
                    seen.add(item.tweet_id)
                results.append(item)
        logger.info(
            "Fetched %d unique tweets across %d queries", len(results), len(queries)
        )
        return results

    # ── private ─────────────────────────────────────────────────────────
    def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        resp = self._session.get(_RECENT_SEARCH_URL, params=params, timeout=30)
        if resp.status_code == 429:
            retry_after = int(resp.headers.get("Retry-After", "60"))
            logger.warning("Rate-limited; sleeping %ds", retry_after)
            time.sleep(retry_after)
            resp = self._session.get(_RECENT_SEARCH_URL, params=params, timeout=30)
        if resp.status_code != 200:
            raise XClientError(
                f"X API returned {resp.status_code}: {resp.text[:500]}"
            )
        return resp.json()  # type: ignore[no-any-return]
