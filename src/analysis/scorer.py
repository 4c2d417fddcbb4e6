"""Content scoring — turns text signals into an intent score and category.

Intent score:
    min(sum(matches(term) * weight(term)) / 100, 1)
over the intent-term table, counted on the full lower-cased text.

Category: the entry of CATEGORY_KEYWORDS with the most term hits inside the
extracted keyword list (ties go to the earlier entry, no hits -> "general").
"""

from __future__ import annotations

import logging
import re

from src.common.models import ContentAnalysisResult, Sentiment

from .text_signals import TextSignalExtractor, content_hash, count_sentences

logger = logging.getLogger(__name__)

INTENT_NORMALIZER = 100.0
GENERAL_CATEGORY = "general"

# Declaration order breaks ties
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": ("tech", "software", "computer", "phone", "laptop", "app", "digital", "gadget"),
    "health": ("health", "fitness", "medical", "wellness", "exercise", "nutrition", "supplement"),
    "fashion": ("fashion", "clothing", "style", "outfit", "dress", "shoes", "accessories"),
    "home": ("home", "kitchen", "furniture", "decor", "garden", "cleaning", "appliance"),
    "travel": ("travel", "vacation", "trip", "hotel", "flight", "destination", "luggage"),
    "food": ("food", "recipe", "cooking", "restaurant", "meal", "ingredient"),
    "beauty": ("beauty", "skincare", "makeup", "cosmetics", "hair", "fragrance"),
    "sports": ("sports", "workout", "gym", "athletic", "outdoor", "equipment"),
    "books": ("book", "reading", "novel", "literature", "author"),
    "automotive": ("car", "auto", "vehicle", "driving", "automotive", "motorcycle"),
    "finance": ("money", "finance", "investment", "savings", "credit", "banking"),
    "education": ("education", "learning", "course", "study", "school", "training"),
}

POSITIVE_WORDS = ("good", "great", "excellent", "amazing", "love", "best", "awesome", "fantastic")
NEGATIVE_WORDS = ("bad", "terrible", "awful", "hate", "worst", "horrible", "disappointing")


def _count_occurrences(text: str, words: tuple[str, ...]) -> int:
    return sum(len(re.findall(re.escape(w), text)) for w in words)


class ContentScorer:
    """Scores page text for buying intent and assigns a topical category.

    Usage:
        scorer = ContentScorer()
        result = scorer.score("Best budget wireless headphones review: compare top deals")
        # result.intent_score -> 0.62, result.category -> "technology"
    """

    def __init__(
        self,
        extractor: TextSignalExtractor | None = None,
        categories: dict[str, tuple[str, ...]] | None = None,
    ):
        self.extractor = extractor or TextSignalExtractor()
        self.categories = categories or CATEGORY_KEYWORDS

    def score(self, text: str) -> ContentAnalysisResult:
        """Analyze text. Never raises; failures degrade to an empty result."""
        digest = content_hash(text or "")
        if not text or not text.strip():
            return ContentAnalysisResult.empty(content_hash=digest)

        try:
            return self._score(text, digest)
        except Exception as e:
            logger.warning("Content scoring failed for %s: %s", digest, e)
            return ContentAnalysisResult.empty(content_hash=digest)

    def _score(self, text: str, digest: str) -> ContentAnalysisResult:
        lowered = text.lower()
        keywords = self.extractor.extract_keywords(lowered)
        signals = self.extractor.count_intent_matches(lowered)
        word_count = len(lowered.split())

        result = ContentAnalysisResult(
            keywords=tuple(keywords),
            intent_score=self.intent_score_from_signals(signals),
            category=self.categorize(keywords),
            sentiment=self.sentiment(lowered),
            content_hash=digest,
            word_count=word_count,
            readability_score=self.readability(lowered, word_count),
            content_score=self.content_score(word_count, len(keywords)),
            intent_signals=signals,
            product_mentions=tuple(self.extractor.detect_product_mentions(lowered)),
        )
        logger.debug(
            "Scored %s: intent=%.2f category=%s sentiment=%s keywords=%d",
            digest, result.intent_score, result.category,
            result.sentiment.value, len(keywords),
        )
        return result

    def intent_score(self, text: str) -> float:
        return self.intent_score_from_signals(self.extractor.count_intent_matches(text))

    def intent_score_from_signals(self, signals: dict[str, int]) -> float:
        raw = sum(count * self.extractor.weight(term) for term, count in signals.items())
        return min(raw / INTENT_NORMALIZER, 1.0)

    def categorize(self, keywords: list[str]) -> str:
        """Category with the most term hits in the keyword list.

        Every (term, keyword) substring hit counts, so "phone" scores twice
        against ["phone", "phones"].
        """
        best_category = GENERAL_CATEGORY
        best_hits = 0
        for category, terms in self.categories.items():
            hits = sum(1 for term in terms for kw in keywords if term in kw)
            if hits > best_hits:
                best_category, best_hits = category, hits
        return best_category

    @staticmethod
    def sentiment(text: str) -> Sentiment:
        positive = _count_occurrences(text, POSITIVE_WORDS)
        negative = _count_occurrences(text, NEGATIVE_WORDS)
        if positive > negative:
            return Sentiment.POSITIVE
        if negative > positive:
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL

    @staticmethod
    def readability(text: str, word_count: int) -> float:
        """100 minus twice the average sentence length, floored at 0."""
        sentences = max(count_sentences(text), 1)
        return max(0.0, 100.0 - (word_count / sentences) * 2)

    @staticmethod
    def content_score(word_count: int, keyword_count: int) -> int:
        """Length score (0-50) plus keyword density score (0-50)."""
        if word_count == 0:
            return 0
        length_score = min(word_count / 1000, 1.0) * 50
        density_score = min(keyword_count / word_count * 1000, 50.0)
        return round(length_score + density_score)
