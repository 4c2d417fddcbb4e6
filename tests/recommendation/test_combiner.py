"""Tests for weighted merging of recommendation sources."""

import pytest

from src.common.models import Product
from src.recommendation.combiner import RecommendationCombiner, dedupe


def _p(pid: str) -> Product:
    return Product(id=pid, name=pid)


@pytest.fixture
def combiner() -> RecommendationCombiner:
    return RecommendationCombiner()


class TestScores:
    def test_product_in_all_sources_scores_one(self, combiner):
        entries = combiner.score([_p("a")], [_p("a")], [_p("a")])
        assert len(entries) == 1
        assert entries[0].score == pytest.approx(1.0)
        assert entries[0].sources == ["content", "history", "session"]

    def test_additive_weights(self, combiner):
        entries = combiner.score([_p("a"), _p("b")], [_p("b")], [_p("c")])
        scores = {e.item.id: e.score for e in entries}
        assert scores == pytest.approx({"a": 0.5, "b": 0.8, "c": 0.2})

    def test_absent_product_not_in_output(self, combiner):
        ids = [p.id for p in combiner.combine([_p("a")], [], [_p("b")])]
        assert "z" not in ids

    def test_duplicates_within_source_count_once(self, combiner):
        entries = combiner.score([_p("a"), _p("a"), _p("a")])
        assert entries[0].score == pytest.approx(0.5)

    def test_custom_weights(self):
        combiner = RecommendationCombiner(content_weight=1, history_weight=2, session_weight=3)
        entries = combiner.score([_p("a")], [_p("a")], [])
        assert entries[0].score == 3


class TestOrdering:
    def test_descending_score(self, combiner):
        ids = [p.id for p in combiner.combine([_p("a"), _p("b")], [_p("b")], [_p("b"), _p("c")])]
        assert ids == ["b", "a", "c"]

    def test_ties_keep_first_seen(self, combiner):
        ids = [p.id for p in combiner.combine([_p("a"), _p("b"), _p("c")])]
        assert ids == ["a", "b", "c"]

    def test_content_merged_first_on_ties(self):
        combiner = RecommendationCombiner(content_weight=0.3, history_weight=0.3, session_weight=0.3)
        ids = [p.id for p in combiner.combine([_p("c1")], [_p("h1")], [_p("s1")])]
        assert ids == ["c1", "h1", "s1"]

    def test_no_duplicates(self, combiner):
        ids = [p.id for p in combiner.combine(
            [_p("a"), _p("b")], [_p("b"), _p("a")], [_p("a"), _p("b"), _p("a")]
        )]
        assert sorted(ids) == ["a", "b"]

    def test_empty_sources(self, combiner):
        assert combiner.combine() == []


class TestKeys:
    def test_custom_key(self, combiner):
        rows = [{"sku": 1}, {"sku": 2}]
        out = combiner.combine(rows, [{"sku": 2}], key=lambda r: r["sku"])
        assert out == [{"sku": 2}, {"sku": 1}]

    def test_dedupe(self):
        assert dedupe(["a", "b", "a", "c"], key=lambda x: x) == ["a", "b", "c"]
