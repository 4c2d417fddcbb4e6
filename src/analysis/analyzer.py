"""Content analyzer — the analysis entry point used by the orchestrator
and the CLI.

Wraps ContentScorer with HTML-to-text extraction and a bounded (LRU) content-hash cache,
and answers the content-analysis request shape
``{url, title, content} -> {keywords, intentScore, category,
recommendedProducts, shouldShowPopup}``.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, Sequence

from bs4 import BeautifulSoup

from src.common.models import (
    POPUP_INTENT_THRESHOLD,
    AnalysisRequest,
    AnalysisResponse,
    ContentAnalysisResult,
    Product,
    ScoredProduct,
)
from src.recommendation.matcher import ProductMatcher

from .scorer import ContentScorer
from .text_signals import TextSignalExtractor, content_hash

if TYPE_CHECKING:
    from src.common.config import AnalysisSettings
    from src.common.database import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1024


def html_to_text(html: str) -> str:
    """Visible text of an HTML document, whitespace-collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def request_text(request: AnalysisRequest) -> str:
    return f"{request.title} {request.content}".strip()


class ContentAnalyzer:
    """Analyzes page text, memoizing results by content hash.

    Analysis is side-effect free, so one analyzer may serve concurrent
    requests; the cache is the only shared state and is lock-guarded.

    Usage:
        analyzer = ContentAnalyzer()
        response = analyzer.analyze_request(request, catalog)
        if response.should_show_popup: ...
    """

    def __init__(
        self,
        scorer: ContentScorer | None = None,
        matcher: ProductMatcher | None = None,
        store: RecordStore | None = None,
        popup_threshold: float = POPUP_INTENT_THRESHOLD,
        max_cache_entries: int = DEFAULT_CACHE_SIZE,
    ):
        self.scorer = scorer or ContentScorer()
        self.matcher = matcher or ProductMatcher()
        self.store = store
        self.popup_threshold = popup_threshold
        self.max_cache_entries = max_cache_entries
        self._cache: OrderedDict[str, ContentAnalysisResult] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, analysis_settings: AnalysisSettings, store: RecordStore | None = None
    ) -> ContentAnalyzer:
        extractor = TextSignalExtractor(max_keywords=analysis_settings.max_keywords)
        return cls(
            scorer=ContentScorer(extractor=extractor),
            store=store,
            popup_threshold=analysis_settings.popup_intent_threshold,
            max_cache_entries=analysis_settings.max_cached_analyses,
        )

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def analyze(self, text: str) -> ContentAnalysisResult:
        """Analyze text, reusing a previous result for identical text."""
        digest = content_hash(text or "")
        with self._lock:
            cached = self._cache.get(digest)
            if cached is not None:
                self._cache.move_to_end(digest)
        if cached is not None:
            logger.debug("Analysis cache hit for %s", digest)
            return cached

        result = self._load_stored(digest) or self.scorer.score(text)
        with self._lock:
            self._cache.setdefault(digest, result)
            self._cache.move_to_end(digest)
            while len(self._cache) > self.max_cache_entries:
                self._cache.popitem(last=False)
        return result

    def analyze_html(self, html: str) -> ContentAnalysisResult:
        return self.analyze(html_to_text(html))

    def analyze_request(
        self,
        request: AnalysisRequest,
        catalog: Sequence[Product] = (),
    ) -> AnalysisResponse:
        """Answer a content-analysis request against a product catalog."""
        result = self.analyze(request_text(request))
        recommended = self.recommend(result, catalog)
        logger.info(
            "Analyzed %s: intent=%.2f category=%s products=%d",
            request.url or result.content_hash,
            result.intent_score,
            result.category,
            len(recommended),
        )
        return AnalysisResponse(
            keywords=list(result.keywords),
            intent_score=result.intent_score,
            category=result.category,
            recommended_products=recommended,
            should_show_popup=self.should_show_popup(result),
        )

    def recommend(
        self, result: ContentAnalysisResult, catalog: Sequence[Product]
    ) -> list[ScoredProduct]:
        """Top products for an analysis (5 for high intent, else 3)."""
        return self.matcher.select(
            catalog, list(result.keywords), result.category, result.intent_score
        )

    def should_show_popup(self, result: ContentAnalysisResult) -> bool:
        return result.intent_score > self.popup_threshold

    def _load_stored(self, digest: str) -> ContentAnalysisResult | None:
        if self.store is None:
            return None
        try:
            return self.store.find_analysis_by_hash(digest)
        except Exception as e:
            logger.warning("Could not read stored analysis %s: %s", digest, e)
            return None
