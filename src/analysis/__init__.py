# Content analysis — keyword extraction, intent scoring, categorization
"""
Analysis modules:
- text_signals: tokenization, ranked keywords, intent terms, product mentions
- scorer: intent score, category, sentiment
- analyzer: hash-memoized analysis facade and request handler
- client: remote analysis request with degraded fallback
"""

from .analyzer import ContentAnalyzer, html_to_text
from .client import AnalysisClient
from .scorer import CATEGORY_KEYWORDS, ContentScorer
from .text_signals import INTENT_KEYWORD_WEIGHTS, TextSignalExtractor, content_hash

__all__ = [
    "ContentAnalyzer",
    "AnalysisClient",
    "ContentScorer",
    "TextSignalExtractor",
    "CATEGORY_KEYWORDS",
    "INTENT_KEYWORD_WEIGHTS",
    "content_hash",
    "html_to_text",
]
