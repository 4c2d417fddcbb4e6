"""Automation orchestrator — end-to-end processing of one published page.

Pipeline:
1. Analyze the page (memoized by content hash)
2. Persist the analysis
3. Rank catalog products, personalized by visitor history and session
4. Evaluate the publisher's automation rules
5. Create a popup when intent is high enough and products exist
6. Fold the page into the daily website analytics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable, Sequence

from src.analysis.analyzer import ContentAnalyzer
from src.common.database import RecordStore
from src.common.models import (
    AutomationRule,
    ContentAnalysisResult,
    Product,
    ScoredProduct,
)
from src.recommendation.engine import RecommendationEngine
from src.recommendation.matcher import result_limit

from .actions import StoreAutomationActions
from .evaluator import AutomationRuleEvaluator, EvaluationReport

logger = logging.getLogger(__name__)


@dataclass
class ProcessingSummary:
    """Outcome of processing one page."""
    website_id: str
    url: str
    analysis: ContentAnalysisResult
    recommendations: list[ScoredProduct] = field(default_factory=list)
    analysis_id: int | None = None
    popup_id: str | None = None
    rules: EvaluationReport = field(default_factory=EvaluationReport)
    should_show_popup: bool = False
    analytics: dict | None = None

    def to_dict(self) -> dict:
        return {
            "website_id": self.website_id,
            "url": self.url,
            "analysis_id": self.analysis_id,
            "analysis": self.analysis.model_dump(mode="json"),
            "should_show_popup": self.should_show_popup,
            "recommendations": [
                p.model_dump(mode="json", by_alias=True) for p in self.recommendations
            ],
            "popup_id": self.popup_id,
            "rules": self.rules.to_dict(),
            "analytics": self.analytics,
        }


class AutomationOrchestrator:
    """Coordinates analysis, recommendations, rules, popups and analytics.

    Usage:
        orchestrator = AutomationOrchestrator(RecordStore(db_path))
        summary = orchestrator.process_page("site-1", "user-1", url, title, content, rules=rules)
    """

    def __init__(
        self,
        store: RecordStore,
        analyzer: ContentAnalyzer | None = None,
        actions: StoreAutomationActions | None = None,
        evaluator: AutomationRuleEvaluator | None = None,
        recommender: RecommendationEngine | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.analyzer = analyzer or ContentAnalyzer(store=store)
        self.actions = actions or StoreAutomationActions(store)
        self.evaluator = evaluator or AutomationRuleEvaluator(self.actions, store)
        self.recommender = recommender or RecommendationEngine(store)
        self._today = today

    def process_page(
        self,
        website_id: str,
        user_id: str,
        url: str,
        title: str,
        content: str,
        rules: Iterable[AutomationRule] = (),
        catalog: Sequence[Product] | None = None,
        visitor_id: str | None = None,
        session_id: str | None = None,
    ) -> ProcessingSummary:
        logger.info("Processing page: %s", title or url)

        analysis = self.analyzer.analyze(f"{title} {content}".strip())
        analysis_id = self.store.save_analysis(website_id, url, analysis)

        if catalog is None:
            catalog = self._load_catalog()
        recommendations = self.recommend(analysis, catalog, visitor_id, session_id)

        report = self.evaluator.evaluate(
            rules, analysis, recommendations, website_id=website_id, analysis_id=analysis_id
        )

        summary = ProcessingSummary(
            website_id=website_id,
            url=url,
            analysis=analysis,
            recommendations=recommendations,
            analysis_id=analysis_id,
            rules=report,
            should_show_popup=self.analyzer.should_show_popup(analysis),
        )

        if summary.should_show_popup and recommendations and not report.popup_created:
            summary.popup_id = self.actions.create_popup(
                user_id, website_id, analysis, recommendations
            )

        summary.analytics = self.update_analytics(website_id, analysis, recommendations)
        logger.info(
            "Processed %s: intent=%.2f, %d products, %d rules fired",
            url or analysis.content_hash, analysis.intent_score,
            len(recommendations), len(report.fired),
        )
        return summary

    def recommend(
        self,
        analysis: ContentAnalysisResult,
        catalog: Sequence[Product],
        visitor_id: str | None = None,
        session_id: str | None = None,
    ) -> list[ScoredProduct]:
        """Catalog ranking for the page merged with the visitor's history and
        session products, capped at 5 for high intent and 3 otherwise.
        """
        matcher = self.analyzer.matcher
        keywords = list(analysis.keywords)
        limit = result_limit(analysis.intent_score)

        ranked = matcher.rank(catalog, keywords, analysis.category)[:limit]
        if not visitor_id and not session_id:
            return ranked

        products = self.recommender.personalize(ranked, visitor_id, session_id, limit)
        return [
            p if isinstance(p, ScoredProduct)
            else ScoredProduct.from_product(p, matcher.relevance(p, keywords, analysis.category))
            for p in products
        ]

    def update_analytics(
        self,
        website_id: str,
        analysis: ContentAnalysisResult,
        recommendations: Sequence[ScoredProduct],
    ) -> dict | None:
        try:
            return self.store.upsert_daily_analytics(
                website_id,
                self._today(),
                keywords_extracted=len(analysis.keywords),
                products_recommended=len(recommendations),
                buying_intent=analysis.intent_score,
            )
        except Exception as e:
            logger.error("Analytics update failed for %s: %s", website_id, e)
            return None

    def _load_catalog(self) -> list[Product]:
        try:
            return self.store.get_products()
        except Exception as e:
            logger.warning("Product catalog unavailable: %s", e)
            return []
