"""Record-store backed automation actions: tracking links, popups and
publisher notifications."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from src.common.database import RecordStore
from src.common.models import ContentAnalysisResult, ScoredProduct, VisitorPreferences
from src.popup.policy import PopupPolicyEngine

from .links import TrackingLink, TrackingLinkBuilder

logger = logging.getLogger(__name__)


class StoreAutomationActions:
    """AutomationActions implementation that persists through a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        policy: PopupPolicyEngine | None = None,
        link_builder: TrackingLinkBuilder | None = None,
        preferences: VisitorPreferences | None = None,
    ):
        self.store = store
        self.policy = policy or PopupPolicyEngine()
        self.link_builder = link_builder or TrackingLinkBuilder()
        self.preferences = preferences

    def create_links(
        self, user_id: str, website_id: str, products: Sequence[ScoredProduct]
    ) -> list[TrackingLink]:
        links: list[TrackingLink] = []
        for product in products:
            if not product.affiliate_url:
                logger.warning("No affiliate URL for %s, skipping link", product.id)
                continue
            link = self.link_builder.link_for(product.id, product.affiliate_url)
            self.store.save_affiliate_link(
                user_id=user_id,
                product_id=product.id,
                original_url=link.original_url,
                tracked_url=link.tracked_url,
                short_code=link.short_code,
                website_id=website_id,
            )
            links.append(link)

        logger.info("Created %d automatic affiliate links", len(links))
        return links

    def create_popup(
        self,
        user_id: str,
        website_id: str,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
    ) -> str | None:
        config = self.policy.build(analysis, products, self.preferences)
        name = f"Auto: {analysis.category} - {date.today().isoformat()}"
        popup_id = self.store.save_popup(website_id, name, config)
        logger.info("Created automatic popup %s (%s)", popup_id, name)
        return popup_id

    def notify_user(
        self,
        user_id: str,
        rule_name: str,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
    ) -> None:
        self.store.add_notification(
            user_id,
            "automation_triggered",
            "Automation Rule Triggered",
            f'Your automation rule "{rule_name}" was triggered and created '
            f"{len(products)} product recommendations.",
            {
                "rule_name": rule_name,
                "recommendations_count": len(products),
                "buying_intent_score": analysis.intent_score,
            },
        )
        logger.info("Notified user %s about rule %s", user_id, rule_name)
