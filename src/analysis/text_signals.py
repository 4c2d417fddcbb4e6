"""Text signal extraction: keywords, intent phrases, product mentions.

Pure functions over raw page text. Identical input always yields an
identical, identically ordered output.
"""

from __future__ import annotations

import hashlib
import re
from collections import Counter
from typing import Mapping

# Terms that signal commercial intent, with their scoring weight.
# Matched as substrings of the full lower-cased text.
INTENT_KEYWORD_WEIGHTS: dict[str, int] = {
    "buy": 10,
    "purchase": 10,
    "best": 16,
    "compare": 14,
    "deal": 10,
    "discount": 10,
    "budget": 10,
    "coupon": 8,
    "how to choose": 8,
    "review": 6,
    "recommend": 6,
    "top": 6,
    "cheap": 6,
    "affordable": 6,
    "sale": 6,
    "versus": 5,
    "vs": 5,
    "price": 4,
    "rating": 4,
    "alternative": 4,
    "guide": 4,
    "shopping": 4,
}

STOP_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "may", "might", "can", "this", "that", "these", "those", "from", "your",
    "they", "them", "their", "there", "what", "which", "when", "where",
    "about", "into", "than", "then", "also", "just", "more", "most", "some",
    "such", "only", "very", "here", "over", "like", "each", "other",
})

MAX_KEYWORDS = 20
MIN_TOKEN_LENGTH = 4

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_SENTENCE_RE = re.compile(r"[.!?]+")

_PRODUCT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\w+\s+(?:phone|laptop|camera|headphones|watch|tablet|speaker)\b"),
    re.compile(r"\b(?:iphone|samsung|apple|sony|nike|adidas)\s+\w+"),
    re.compile(r"\$\d+"),
)


def content_hash(text: str) -> str:
    """Stable identifier for a piece of text (used to skip re-analysis)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def tokenize(text: str) -> list[str]:
    """Lower-case, strip punctuation, split on whitespace."""
    return _PUNCTUATION_RE.sub("", text.lower()).split()


def count_sentences(text: str) -> int:
    return len([s for s in _SENTENCE_RE.split(text) if s.strip()])


class TextSignalExtractor:
    """Extracts ranked keywords and commercial-intent signals from text.

    Usage:
        extractor = TextSignalExtractor()
        keywords = extractor.extract_keywords("Best budget headphones review ...")
        # ["best", "budget", "review", "headphones"]
    """

    def __init__(
        self,
        intent_weights: Mapping[str, int] | None = None,
        stop_words: frozenset[str] | None = None,
        max_keywords: int = MAX_KEYWORDS,
    ):
        self.intent_weights = dict(intent_weights or INTENT_KEYWORD_WEIGHTS)
        self.stop_words = stop_words if stop_words is not None else STOP_WORDS
        self.max_keywords = max_keywords

    def is_intent_keyword(self, token: str) -> bool:
        """True for intent terms and their simple plurals ("deals")."""
        if token in self.intent_weights:
            return True
        return token.endswith("s") and token[:-1] in self.intent_weights

    def keyword_frequencies(self, text: str) -> Counter[str]:
        """Frequency map of tokens that survive the length/stop-word filter.

        Counter preserves first-occurrence order, which breaks ranking ties.
        """
        return Counter(
            token
            for token in tokenize(text)
            if len(token) >= MIN_TOKEN_LENGTH and token not in self.stop_words
        )

    def extract_keywords(self, text: str) -> list[str]:
        """Top keywords ranked by (is_intent_keyword, frequency) descending.

        Intent keywords always outrank plain keywords regardless of count.
        """
        if not text:
            return []
        frequencies = self.keyword_frequencies(text)
        ranked = sorted(
            frequencies.items(),
            key=lambda item: (self.is_intent_keyword(item[0]), item[1]),
            reverse=True,
        )
        return [word for word, _ in ranked[: self.max_keywords]]

    def count_intent_matches(self, text: str) -> dict[str, int]:
        """Substring match count per intent term over the full text.

        Only terms with at least one match are returned, in table order.
        """
        lowered = text.lower()
        matches: dict[str, int] = {}
        for term in self.intent_weights:
            count = len(re.findall(re.escape(term), lowered))
            if count:
                matches[term] = count
        return matches

    def weight(self, term: str) -> int:
        return self.intent_weights.get(term, 1)

    @staticmethod
    def detect_product_mentions(text: str) -> list[str]:
        """Product-like phrases ("wireless headphones", "sony wh1000", "$199")."""
        lowered = text.lower()
        seen: dict[str, None] = {}
        for pattern in _PRODUCT_PATTERNS:
            for match in pattern.finditer(lowered):
                seen.setdefault(match.group(0), None)
        return list(seen)
