"""Tests for the record-store backed recommendation engine."""

from unittest.mock import MagicMock

import pytest

from src.common.models import Product
from src.recommendation.engine import RecommendationEngine


@pytest.fixture
def engine(store, catalog) -> RecommendationEngine:
    store.upsert_products(catalog)
    return RecommendationEngine(store)


class TestSources:
    def test_content_based_by_category(self, engine):
        ids = [p.id for p in engine.content_based("technology")]
        assert "p-sony" in ids
        assert "p-garden" not in ids
        assert len(ids) <= 10

    def test_content_based_empty_category(self, engine):
        assert engine.content_based("") == []

    def test_user_history(self, engine, store):
        for pid in ["p-garden", "p-anker", "p-garden"]:
            store.record_interaction("click", user_id="u1", product_id=pid)
        store.record_interaction("page_view", user_id="u1")

        ids = [p.id for p in engine.user_history("u1")]
        # most recent first, de-duplicated
        assert ids == ["p-garden", "p-anker"]

    def test_user_history_caps_at_five(self, engine, store, catalog):
        for product in catalog:
            store.record_interaction("click", user_id="u1", product_id=product.id)
        assert len(engine.user_history("u1")) == 5

    def test_session_only_counts_views(self, engine, store):
        store.record_interaction("product_viewed", session_id="s1", product_id="p-jbl")
        store.record_interaction("click", session_id="s1", product_id="p-garden")
        ids = [p.id for p in engine.session_based("s1")]
        assert ids == ["p-jbl"]


class TestRecommend:
    def test_combined_ranking(self, engine, store):
        store.record_interaction("click", user_id="u1", product_id="p-garden")
        store.record_interaction("product_viewed", session_id="s1", product_id="p-garden")
        store.record_interaction("product_viewed", session_id="s1", product_id="p-anker")

        products = engine.recommend("technology", user_id="u1", session_id="s1")
        ids = [p.id for p in products]

        # p-anker: content + session = 0.7; p-garden: history + session = 0.5
        assert ids[0] == "p-anker"
        assert "p-garden" in ids
        assert len(ids) <= 5
        assert len(ids) == len(set(ids))

    def test_filters_ineligible(self, engine):
        ids = {p.id for p in engine.recommend("technology", limit=20)}
        assert not ids & {"p-free", "p-nocommission", "p-nolink"}

    def test_limit(self, engine):
        assert len(engine.recommend("technology", limit=2)) == 2

    def test_store_failure_yields_empty_source(self):
        store = MagicMock()
        store.get_products.side_effect = RuntimeError("db down")
        store.recent_interactions.side_effect = RuntimeError("db down")
        engine = RecommendationEngine(store)

        assert engine.recommend("technology", user_id="u1", session_id="s1") == []

    def test_partial_failure_keeps_other_sources(self):
        good = Product(id="h1", name="h", price=5, commission_rate=1, affiliate_url="https://x")
        engine = RecommendationEngine(MagicMock())
        engine.content_based = MagicMock(side_effect=RuntimeError("boom"))
        engine.user_history = MagicMock(return_value=[good])

        assert engine.recommend("technology", user_id="u1") == [good]


class TestPersonalize:
    def test_keeps_content_order_without_visitor(self, engine, catalog):
        content = [catalog[2], catalog[0], catalog[1]]
        assert engine.personalize(content) == content

    def test_history_appended_after_content(self, engine, store, catalog):
        store.record_interaction("click", user_id="u1", product_id="p-garden")
        ids = [p.id for p in engine.personalize(catalog[:2], user_id="u1")]
        assert ids == ["p-sony", "p-jbl", "p-garden"]

    def test_drops_ineligible_and_caps(self, engine, catalog):
        products = engine.personalize(catalog, limit=2)
        assert [p.id for p in products] == ["p-sony", "p-jbl"]
        assert engine.personalize(catalog[5:]) == []


class TestTrackInteraction:
    def test_records(self, engine, store):
        assert engine.track_interaction("product_viewed", session_id="s1", product_id="p-jbl")
        rows = store.recent_interactions(session_id="s1")
        assert rows[0]["event_type"] == "product_viewed"
        assert rows[0]["product_id"] == "p-jbl"

    def test_failure_returns_false(self):
        store = MagicMock()
        store.record_interaction.side_effect = RuntimeError("read-only")
        assert RecommendationEngine(store).track_interaction("click") is False
