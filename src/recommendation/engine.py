"""Recommendation engine — builds the three source lists from the record
store, combines them, applies business filters and caps the result.

Sources:
- content: products whose category contains the analyzed category (max 10)
- history: products the user interacted with (last 50 interactions, max 5 ids)
- session: products viewed in this session (last 20 interactions, max 3 ids)
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from src.common.database import RecordStore
from src.common.models import Product

from .combiner import RecommendationCombiner, dedupe
from .matcher import filter_eligible

logger = logging.getLogger(__name__)

CONTENT_SOURCE_LIMIT = 10
HISTORY_INTERACTION_LIMIT = 50
HISTORY_PRODUCT_LIMIT = 5
SESSION_INTERACTION_LIMIT = 20
SESSION_PRODUCT_LIMIT = 3
DEFAULT_LIMIT = 5

PRODUCT_VIEWED = "product_viewed"


class RecommendationEngine:
    """Hybrid content / behavior / session recommendations.

    Usage:
        engine = RecommendationEngine(RecordStore(db_path))
        products = engine.recommend("technology", user_id="u1", session_id="s1")
    """

    def __init__(
        self,
        store: RecordStore,
        combiner: RecommendationCombiner | None = None,
    ):
        self.store = store
        self.combiner = combiner or RecommendationCombiner()

    def recommend(
        self,
        category: str,
        user_id: str | None = None,
        session_id: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[Product]:
        content = self._safely("content", lambda: self.content_based(category))
        return self.personalize(content, user_id, session_id, limit)

    def personalize(
        self,
        content: Sequence[Product],
        user_id: str | None = None,
        session_id: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[Product]:
        """Merge an already-ranked content list with the visitor's history
        and session sources. Without a visitor the content order is kept.
        """
        history = self._safely("history", lambda: self.user_history(user_id)) if user_id else []
        session = self._safely("session", lambda: self.session_based(session_id)) if session_id else []

        combined = self.combiner.combine(content, history, session)
        eligible = filter_eligible(combined)
        logger.info(
            "Recommendations: %d content, %d history, %d session -> %d eligible",
            len(content), len(history), len(session), len(eligible),
        )
        return eligible[:limit]

    def content_based(self, category: str) -> list[Product]:
        if not category:
            return []
        return self.store.get_products(category_like=category, limit=CONTENT_SOURCE_LIMIT)

    def user_history(self, user_id: str) -> list[Product]:
        interactions = self.store.recent_interactions(
            user_id=user_id, limit=HISTORY_INTERACTION_LIMIT
        )
        ids = dedupe(i["product_id"] for i in interactions if i.get("product_id"))
        if not ids:
            return []
        return self.store.get_products(ids=ids[:HISTORY_PRODUCT_LIMIT])

    def session_based(self, session_id: str) -> list[Product]:
        interactions = self.store.recent_interactions(
            session_id=session_id, limit=SESSION_INTERACTION_LIMIT
        )
        ids = dedupe(
            i["product_id"]
            for i in interactions
            if i.get("product_id") and i.get("event_type") == PRODUCT_VIEWED
        )
        if not ids:
            return []
        return self.store.get_products(ids=ids[:SESSION_PRODUCT_LIMIT])

    def track_interaction(
        self,
        event_type: str,
        website_id: str = "",
        session_id: str = "",
        user_id: str | None = None,
        product_id: str | None = None,
        popup_id: str | None = None,
        value: float | None = None,
        metadata: dict | None = None,
    ) -> bool:
        """Persist a visitor interaction. Returns False if the write failed."""
        try:
            self.store.record_interaction(
                event_type,
                website_id=website_id,
                session_id=session_id,
                user_id=user_id,
                product_id=product_id,
                popup_id=popup_id,
                value=value,
                metadata=metadata,
            )
            return True
        except Exception as e:
            logger.error("Failed to track %s interaction: %s", event_type, e)
            return False

    def _safely(self, source: str, fetch: Callable[[], list[Product]]) -> list[Product]:
        try:
            return fetch()
        except Exception as e:
            logger.warning("%s recommendations unavailable: %s", source.capitalize(), e)
            return []
