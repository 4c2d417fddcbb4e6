"""Product matching — relevance of catalog products to analyzed content.

Relevance per product:
- Keyword match: 4 points per content keyword found in name + description
- Category match: 5 points when the product category contains the content category
- Commission: 0.2 x commission_rate

Ineligible products (no positive price, no positive commission, or no
affiliate URL) are removed before ranking, so they never take a top-N slot.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from src.common.models import Product, ScoredProduct

logger = logging.getLogger(__name__)

KEYWORD_MATCH_POINTS = 4.0
CATEGORY_MATCH_POINTS = 5.0
COMMISSION_WEIGHT = 0.2

HIGH_INTENT_THRESHOLD = 0.8
HIGH_INTENT_LIMIT = 5
DEFAULT_LIMIT = 3


def is_eligible(product: Product) -> bool:
    """Business filter: sellable, commissionable and linkable."""
    return (
        product.price is not None
        and product.price > 0
        and product.commission_rate > 0
        and bool(product.affiliate_url)
    )


def filter_eligible(products: Iterable[Product]) -> list[Product]:
    eligible = [p for p in products if is_eligible(p)]
    return eligible


def result_limit(intent_score: float) -> int:
    """More products for high-intent content."""
    return HIGH_INTENT_LIMIT if intent_score > HIGH_INTENT_THRESHOLD else DEFAULT_LIMIT


class ProductMatcher:
    """Scores and ranks candidate products against content keywords.

    Usage:
        matcher = ProductMatcher()
        top = matcher.select(catalog, keywords, "technology", intent_score=0.85)
        # top[0].relevance_score -> 17.0
    """

    def __init__(
        self,
        keyword_points: float = KEYWORD_MATCH_POINTS,
        category_points: float = CATEGORY_MATCH_POINTS,
        commission_weight: float = COMMISSION_WEIGHT,
    ):
        self.keyword_points = keyword_points
        self.category_points = category_points
        self.commission_weight = commission_weight

    def relevance(self, product: Product, keywords: Sequence[str], category: str) -> float:
        text = f"{product.name} {product.description or ''}".lower()
        score = self.keyword_points * sum(1 for kw in keywords if kw.lower() in text)

        if category and category.lower() in (product.category or "").lower():
            score += self.category_points

        score += product.commission_rate * self.commission_weight
        return score

    def rank(
        self,
        products: Iterable[Product],
        keywords: Sequence[str],
        category: str,
    ) -> list[ScoredProduct]:
        """All eligible products, highest relevance first (stable on ties)."""
        candidates = list(products)
        eligible = filter_eligible(candidates)
        if len(eligible) < len(candidates):
            logger.debug("Excluded %d ineligible products", len(candidates) - len(eligible))

        scored = [
            ScoredProduct.from_product(p, self.relevance(p, keywords, category))
            for p in eligible
        ]
        scored.sort(key=lambda sp: sp.relevance_score, reverse=True)
        return scored

    def select(
        self,
        products: Iterable[Product],
        keywords: Sequence[str],
        category: str,
        intent_score: float,
    ) -> list[ScoredProduct]:
        """Top 5 products for intent > 0.8, otherwise top 3."""
        return self.rank(products, keywords, category)[: result_limit(intent_score)]
