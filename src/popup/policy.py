"""Popup policy — turns an analysis result and ranked products into a
complete, immutable PopupConfig.

Intent bands:
- archetype: > 0.8 overlay-center, > 0.5 slide-in-bottom, else top-banner
- trigger:   > 0.7 shows earlier (30% scroll / 3s)
- copy:      > 0.7 urgency wording, else discovery wording
- CTA:       > 0.7 "Shop Now", > 0.4 "Learn More", else "View Details"

A visitor with an explicit non-aggressive preference always gets the relaxed
trigger (70% scroll / 10s, once per day), whatever the intent.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Sequence

from src.common.config import PopupSettings
from src.common.models import (
    DEFAULT_COOLDOWN_MS,
    ColorScheme,
    ContentAnalysisResult,
    DesignSettings,
    DisplayFrequency,
    PopupConfig,
    PopupContent,
    PopupType,
    ScoredProduct,
    TargetingRule,
    TriggerRule,
    VisitorPreferences,
)

logger = logging.getLogger(__name__)

# Base trigger: half-way scroll plus 5 seconds, exit intent on
BASE_SCROLL_PERCENTAGE = 50.0
BASE_TIME_DELAY_MS = 5000
HIGH_INTENT_SCROLL_PERCENTAGE = 30.0
HIGH_INTENT_TIME_DELAY_MS = 3000
RELAXED_SCROLL_PERCENTAGE = 70.0
RELAXED_TIME_DELAY_MS = 10000

OVERLAY_THRESHOLD = 0.8
SLIDE_IN_THRESHOLD = 0.5
URGENCY_THRESHOLD = 0.7
LEARN_MORE_THRESHOLD = 0.4

MAX_POPUP_PRODUCTS = 3

URGENCY_COPY = {
    "headline": "Perfect Products for You!",
    "description": "Based on what you're reading, these products are perfect for you!",
}
DISCOVERY_COPY = {
    "headline": "You Might Also Like",
    "description": "Discover products related to this content.",
}


def _default_popup_id() -> str:
    return f"popup_{uuid.uuid4().hex[:12]}"


def select_popup_type(intent_score: float) -> PopupType:
    if intent_score > OVERLAY_THRESHOLD:
        return PopupType.OVERLAY_CENTER
    if intent_score > SLIDE_IN_THRESHOLD:
        return PopupType.SLIDE_IN_BOTTOM
    return PopupType.TOP_BANNER


def select_cta_text(intent_score: float) -> str:
    if intent_score > URGENCY_THRESHOLD:
        return "Shop Now"
    if intent_score > LEARN_MORE_THRESHOLD:
        return "Learn More"
    return "View Details"


class PopupPolicyEngine:
    """Builds popup configurations from content intent and visitor preferences.

    Usage:
        engine = PopupPolicyEngine()
        config = engine.build(analysis, products, VisitorPreferences(aggressive_popups=False))
        # config.trigger_rule.scroll_percentage -> 70.0
    """

    def __init__(
        self,
        max_displays_per_user: int | None = None,
        cooldown_period_ms: int = DEFAULT_COOLDOWN_MS,
        max_products: int = MAX_POPUP_PRODUCTS,
        id_factory: Callable[[], str] = _default_popup_id,
        clock: Callable[[], datetime] | None = None,
    ):
        self.targeting_defaults = TargetingRule(cooldown_period_ms=cooldown_period_ms)
        if max_displays_per_user is not None:
            self.targeting_defaults = self.targeting_defaults.model_copy(
                update={"max_displays_per_user": max_displays_per_user}
            )
        self.max_products = max_products
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, popup_settings: PopupSettings, **kwargs) -> PopupPolicyEngine:
        return cls(
            max_displays_per_user=popup_settings.max_displays_per_user,
            cooldown_period_ms=popup_settings.cooldown_period_ms,
            max_products=popup_settings.max_products,
            **kwargs,
        )

    def build(
        self,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
        preferences: VisitorPreferences | None = None,
    ) -> PopupConfig:
        """Create the popup configuration for one piece of content."""
        preferences = preferences or VisitorPreferences()
        intent = analysis.intent_score
        popup_type = select_popup_type(intent)
        trigger = self.trigger_rule(intent, preferences)

        config = PopupConfig(
            id=self._id_factory(),
            popup_type=popup_type,
            trigger_rule=trigger,
            design=self.design(popup_type, preferences),
            content=self.content(intent, products),
            targeting=self.targeting(trigger),
            created_at=self._clock(),
        )
        logger.info(
            "Built popup %s: type=%s scroll=%s delay=%s frequency=%s products=%d",
            config.id, popup_type.value, trigger.scroll_percentage,
            trigger.time_delay_ms, trigger.frequency.value, len(config.content.products),
        )
        return config

    def trigger_rule(
        self, intent_score: float, preferences: VisitorPreferences | None = None
    ) -> TriggerRule:
        scroll, delay = BASE_SCROLL_PERCENTAGE, BASE_TIME_DELAY_MS
        frequency = DisplayFrequency.ONCE_PER_SESSION

        if intent_score > URGENCY_THRESHOLD:
            scroll, delay = HIGH_INTENT_SCROLL_PERCENTAGE, HIGH_INTENT_TIME_DELAY_MS

        if preferences is not None and preferences.is_non_aggressive:
            scroll, delay = RELAXED_SCROLL_PERCENTAGE, RELAXED_TIME_DELAY_MS
            frequency = DisplayFrequency.ONCE_PER_DAY

        return TriggerRule(
            scroll_percentage=scroll,
            time_delay_ms=delay,
            exit_intent=True,
            frequency=frequency,
        )

    def design(
        self, popup_type: PopupType, preferences: VisitorPreferences | None = None
    ) -> DesignSettings:
        colors = ColorScheme()
        if preferences is not None and preferences.brand_color:
            colors = colors.model_copy(update={"primary": preferences.brand_color})
        return DesignSettings(template=popup_type, colors=colors)

    def content(self, intent_score: float, products: Sequence[ScoredProduct]) -> PopupContent:
        copy = URGENCY_COPY if intent_score > URGENCY_THRESHOLD else DISCOVERY_COPY
        return PopupContent(
            headline=copy["headline"],
            description=copy["description"],
            cta_text=select_cta_text(intent_score),
            products=tuple(products[: self.max_products]),
        )

    def targeting(self, trigger: TriggerRule) -> TargetingRule:
        """Targeting defaults; once-per-day never allows a cooldown under 24h."""
        if (
            trigger.frequency == DisplayFrequency.ONCE_PER_DAY
            and self.targeting_defaults.cooldown_period_ms < DEFAULT_COOLDOWN_MS
        ):
            return self.targeting_defaults.model_copy(
                update={"cooldown_period_ms": DEFAULT_COOLDOWN_MS}
            )
        return self.targeting_defaults
