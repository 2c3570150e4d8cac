"""Unit tests for tweet → entity matching."""

from datetime import UTC, datetime

import pytest

from mindshare.matcher import build_patterns, is_relevant, match, match_items
from mindshare.models import Entity, TextItem


def _entity(entity_id: str, handle: str, short_name: str | None = None) -> Entity:
    return Entity(id=entity_id, handle=handle, short_name=short_name)


def _item(text: str) -> TextItem:
    return TextItem(
        author_handle="someone",
        text=text,
        created_at=datetime(2026, 10, 18, tzinfo=UTC),
    )


AKARI = _entity("1", "akari", "AKR")
LONG = _entity("2", "verylonghandlename", "VLH")


class TestBuildPatterns:
    def test_short_handle_gets_three_patterns(self) -> None:
        patterns = build_patterns([AKARI])
        assert len(patterns) == 3

    def test_long_handle_has_no_bare_pattern(self) -> None:
        patterns = build_patterns([LONG])
        # mention + cashtag only
        assert len(patterns) == 2

    def test_no_cashtag_when_short_name_equals_handle(self) -> None:
        patterns = build_patterns([_entity("1", "btc", "BTC")])
        assert len(patterns) == 2

    def test_no_cashtag_when_short_name_too_long(self) -> None:
        patterns = build_patterns([_entity("1", "foo", "ELEVENCHARS")])
        assert len(patterns) == 2

    def test_shared_pattern_merged(self) -> None:
        alpha = _entity("a", "alpha", "AI")
        beta = _entity("b", "beta", "AI")
        patterns = build_patterns([alpha, beta])
        # @alpha, alpha, $ai, @beta, beta
        assert len(patterns) == 5
        shared = [ents for ents in patterns.targets.values() if len(ents) > 1]
        assert [[e.id for e in ents] for ents in shared] == [["a", "b"]]

    def test_empty_handle_skipped(self) -> None:
        patterns = build_patterns([_entity("x", ""), AKARI])
        assert len(patterns) == 3

    def test_metacharacters_escaped(self) -> None:
        weird = _entity("w", "a.b")
        patterns = build_patterns([weird, _entity("p", "(paren")])
        assert match("hi @a.b", patterns) == [weird]
        assert match("hi @axb", patterns) == []
        assert [e.id for e in match("@(paren here", patterns)] == ["p"]


class TestMatch:
    def test_mention(self) -> None:
        patterns = build_patterns([AKARI, LONG])
        assert match("@Akari is live", patterns) == [AKARI]

    @pytest.mark.parametrize(
        "text",
        ["@akari", "gm @AKARI and akari and $akr", "(@aKaRi)", "ok @akari."],
    )
    def test_entity_reported_once(self, text: str) -> None:
        patterns = build_patterns([AKARI, LONG])
        result = match(text, patterns)
        assert [e.id for e in result].count("1") == 1

    def test_bare_handle_whole_word_only(self) -> None:
        patterns = build_patterns([AKARI])
        assert match("akari rocks", patterns) == [AKARI]
        assert match("akarian rocks", patterns) == []

    def test_long_handle_needs_mention(self) -> None:
        patterns = build_patterns([LONG])
        assert match("verylonghandlename rocks", patterns) == []
        assert match("@verylonghandlename rocks", patterns) == [LONG]

    def test_cashtag(self) -> None:
        patterns = build_patterns([AKARI, LONG])
        assert match("$VLH to the moon", patterns) == [LONG]

    def test_shared_cashtag_hits_all_targets(self) -> None:
        alpha = _entity("a", "alpha", "AI")
        beta = _entity("b", "beta", "AI")
        patterns = build_patterns([alpha, beta])
        assert [e.id for e in match("$AI season", patterns)] == ["a", "b"]

    def test_no_match(self) -> None:
        patterns = build_patterns([AKARI])
        assert match("nothing to see", patterns) == []


class TestMatchItems:
    def test_drops_unmatched(self) -> None:
        patterns = build_patterns([AKARI, LONG])
        items = [_item("@akari gm"), _item("unrelated"), _item("$vlh and @akari")]
        matched = match_items(items, patterns)
        assert len(matched) == 2
        assert {e.id for e in matched[1].entities} == {"1", "2"}

    def test_empty(self) -> None:
        assert match_items([], build_patterns([AKARI])) == []


class TestIsRelevant:
    def test_no_keywords_accepts(self) -> None:
        assert is_relevant("anything", [])

    def test_case_insensitive(self) -> None:
        assert is_relevant("Big LAUNCH today", ["launch"])

    def test_miss(self) -> None:
        assert not is_relevant("gm", ["launch", "mainnet"])


class TestEntity:
    def test_at_prefix_stripped(self) -> None:
        assert Entity(id="1", handle="@Akari").handle == "Akari"

    def test_keywords_normalised(self) -> None:
        entity = Entity(id="1", handle="a", keywords="Launch, Mainnet ,")
        assert entity.keywords == ("launch", "mainnet")
