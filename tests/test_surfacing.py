"""Tests for weave.features.surfacing."""

import pytest

from weave.features.surfacing import (
    QuerySurfacer,
    clamp_limit,
    lexical_search,
    validate_query,
)
from weave.protocols import InvalidInputError
from weave.types import ContentKind


@pytest.fixture
def ranked(make_item):
    return [
        make_item("i-1", title="Evening wind-down", body="Reading before bed", score=0.9),
        make_item("i-2", title="Sleep debt", body="Track hours", score=0.7, days_old=3),
        make_item("d-1", kind=ContentKind.DOCUMENT, title="Circadian notes", score=0.6),
    ]


class TestValidation:
    @pytest.mark.parametrize("query", ["", "  ", "ab", " a ", None])
    def test_short_queries_rejected(self, query):
        with pytest.raises(InvalidInputError):
            validate_query(query)

    def test_query_is_trimmed(self):
        assert validate_query("  sleep ") == "sleep"

    def test_limit_bounds(self):
        assert clamp_limit(None) == 10
        assert clamp_limit(0) == 1
        assert clamp_limit(500) == 50


class TestLexicalSearch:
    def test_case_insensitive_title_or_body(self, make_item):
        items = [
            make_item("a", title="SLEEP well", days_old=5),
            make_item("b", title="Other", body="about sleep cycles", days_old=1),
            make_item("c", title="Unrelated"),
        ]
        assert [i.id for i in lexical_search("Sleep", items, 10)] == ["b", "a"]

    def test_capped_at_limit(self, make_item):
        items = [make_item(f"n-{n}", title="sleep", days_old=n) for n in range(5)]
        assert [i.id for i in lexical_search("sleep", items, 2)] == ["n-0", "n-1"]


class TestQuerySurfacer:
    def test_oracle_selection_and_synthesis(self, oracle_factory, ranked):
        oracle = oracle_factory(
            surface={"relevant_indices": [2, 0], "synthesis": "You already wind down early."}
        )
        result = QuerySurfacer(oracle).surface("sleep", ranked, lambda: ranked, 10)
        assert [i.id for i in result.items] == ["d-1", "i-1"]
        assert result.synthesis == "You already wind down early."
        assert result.fallback is False

    def test_previews_sent_to_oracle(self, oracle_factory, ranked):
        oracle = oracle_factory(surface={"relevant_indices": [0]})
        QuerySurfacer(oracle).surface("sleep", ranked, lambda: ranked, 5)
        _, query, previews, limit = oracle.calls[0]
        assert query == "sleep"
        assert limit == 5
        assert previews[0] == {
            "id": "i-1",
            "kind": "insight",
            "title": "Evening wind-down",
            "excerpt": "Reading before bed",
            "score": 0.9,
        }

    def test_invalid_and_duplicate_indices_dropped(self, oracle_factory, ranked):
        oracle = oracle_factory(surface={"relevant_indices": [1, 1, 7, -2, "0", True, 0]})
        result = QuerySurfacer(oracle).surface("sleep", ranked, lambda: ranked, 10)
        assert [i.id for i in result.items] == ["i-2", "i-1"]

    def test_selection_capped_at_limit(self, oracle_factory, ranked):
        oracle = oracle_factory(surface={"relevant_indices": [0, 1, 2]})
        result = QuerySurfacer(oracle).surface("sleep", ranked, lambda: ranked, 2)
        assert len(result.items) == 2

    def test_oracle_failure_falls_back_to_lexical(self, oracle_down, ranked, make_item):
        extra = make_item("e-1", kind=ContentKind.EXPERIMENT, title="Sleep experiment")
        result = QuerySurfacer(oracle_down).surface(
            "sleep", ranked, lambda: ranked + [extra], 10
        )
        assert result.fallback is True
        assert result.synthesis is None
        assert [i.id for i in result.items] == ["e-1", "i-2"]

    def test_empty_selection_falls_back(self, oracle_factory, ranked):
        oracle = oracle_factory(surface={"relevant_indices": [], "synthesis": "Nothing"})
        result = QuerySurfacer(oracle).surface("circadian", ranked, lambda: ranked, 10)
        assert result.fallback is True
        assert result.synthesis is None
        assert [i.id for i in result.items] == ["d-1"]

    def test_no_matches_is_not_an_error(self, oracle_down, ranked):
        result = QuerySurfacer(oracle_down).surface("zebra", ranked, lambda: ranked, 10)
        assert result.items == []
        assert result.fallback is True

    def test_searchable_loaded_only_on_fallback(self, oracle_factory, ranked):
        oracle = oracle_factory(surface={"relevant_indices": [0]})

        def explode():
            raise AssertionError("fallback corpus should not be loaded")

        result = QuerySurfacer(oracle).surface("sleep", ranked, explode, 10)
        assert result.items[0].id == "i-1"
