"""Shared Pydantic data models for the intent popup engine.

These models define the data contracts between content analysis,
recommendation ranking, popup policy and the client-side trigger layer.
External JSON (catalog rows, automation rules, analysis responses) is
validated here; camelCase wire names are accepted through aliases.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

POPUP_INTENT_THRESHOLD = 0.6
DEFAULT_COOLDOWN_MS = 24 * 60 * 60 * 1000
DEFAULT_MAX_DISPLAYS = 3

_FROZEN = ConfigDict(frozen=True, populate_by_name=True)


# === Enums ===

class Sentiment(str, Enum):
    """Overall tone of analyzed content."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PopupType(str, Enum):
    """Popup archetypes, from most to least intrusive."""
    OVERLAY_CENTER = "overlay-center"
    SLIDE_IN_BOTTOM = "slide-in-bottom"
    TOP_BANNER = "top-banner"


class DisplayFrequency(str, Enum):
    """How often a visitor may see the same popup."""
    ONCE_PER_SESSION = "once-per-session"
    ONCE_PER_DAY = "once-per-day"


class TelemetryEventType(str, Enum):
    """Events emitted by the trigger layer."""
    POPUP_DISPLAYED = "popup_displayed"
    POPUP_CLOSED = "popup_closed"
    POPUP_CTA_CLICKED = "popup_cta_clicked"
    PRODUCT_CLICKED = "product_clicked"


class CloseReason(str, Enum):
    """Ways a displayed popup can be dismissed."""
    CLOSE_BUTTON = "close_button"
    OVERLAY_CLICK = "overlay_click"
    CTA_CLICK = "cta_click"


# === Content Analysis ===

class ContentAnalysisResult(BaseModel):
    """Result of analyzing one page of text. Immutable once created."""
    model_config = _FROZEN

    keywords: tuple[str, ...] = ()
    intent_score: float = Field(default=0.0, ge=0, le=1)
    category: str = "general"
    sentiment: Sentiment = Sentiment.NEUTRAL
    content_hash: str = ""
    word_count: int = Field(default=0, ge=0)
    readability_score: float = Field(default=0.0, ge=0, le=100)
    content_score: int = Field(default=0, ge=0, le=100)
    intent_signals: dict[str, int] = Field(default_factory=dict)
    product_mentions: tuple[str, ...] = ()

    @property
    def should_show_popup(self) -> bool:
        return self.intent_score > POPUP_INTENT_THRESHOLD

    @classmethod
    def empty(cls, content_hash: str = "") -> ContentAnalysisResult:
        """Degraded result used whenever analysis cannot run."""
        return cls(content_hash=content_hash)


# === Catalog ===

class Product(BaseModel):
    """Affiliate product from an external catalog (read-only input)."""
    model_config = _FROZEN

    id: str
    name: str
    description: str = ""
    category: str = ""
    price: float | None = None
    currency: str = "USD"
    commission_rate: float = Field(default=0.0, alias="commissionRate")
    affiliate_url: str | None = Field(default=None, alias="affiliateUrl")
    image_url: str | None = Field(default=None, alias="imageUrl")


class ScoredProduct(Product):
    """Product with a per-request relevance score. Never persisted."""
    relevance_score: float = Field(default=0.0, alias="relevanceScore")

    @classmethod
    def from_product(cls, product: Product, score: float) -> ScoredProduct:
        return cls(**product.model_dump(exclude={"relevance_score"}), relevance_score=score)


# Ordered by rank, no duplicate ids, capped at 3-5 entries
RecommendationSet = list[ScoredProduct]


# === Popup Configuration ===

class TriggerRule(BaseModel):
    """Display conditions. Present scroll/time conditions are AND-ed;
    exit intent is an independent OR-path."""
    model_config = _FROZEN

    scroll_percentage: float | None = Field(default=None, ge=0, le=100, alias="scrollPercentage")
    time_delay_ms: int | None = Field(default=None, ge=0, alias="timeDelayMs")
    exit_intent: bool = Field(default=False, alias="exitIntent")
    frequency: DisplayFrequency = DisplayFrequency.ONCE_PER_SESSION


class ColorScheme(BaseModel):
    model_config = _FROZEN

    primary: str = "#4F46E5"
    secondary: str = "#10B981"
    background: str = "#FFFFFF"
    text: str = "#1F2937"


class DesignSettings(BaseModel):
    """Presentation hints for the renderer (rendering itself is external)."""
    model_config = _FROZEN

    template: PopupType
    colors: ColorScheme = Field(default_factory=ColorScheme)
    heading_font: str = "Inter, sans-serif"
    body_font: str = "Inter, sans-serif"
    entrance_animation: str = "fadeInUp"
    exit_animation: str = "fadeOut"
    animation_duration_ms: int = 300
    responsive: bool = True
    mobile_optimized: bool = True


class PopupContent(BaseModel):
    model_config = _FROZEN

    headline: str
    description: str
    cta_text: str
    products: tuple[ScoredProduct, ...] = ()
    show_prices: bool = True
    show_ratings: bool = True


class TargetingRule(BaseModel):
    model_config = _FROZEN

    device_types: tuple[str, ...] = ("desktop", "mobile", "tablet")
    user_segments: tuple[str, ...] = ("all",)
    exclude_returning: bool = False
    max_displays_per_user: int = Field(default=DEFAULT_MAX_DISPLAYS, ge=0)
    cooldown_period_ms: int = Field(default=DEFAULT_COOLDOWN_MS, ge=0)


class BehaviorSettings(BaseModel):
    model_config = _FROZEN

    close_on_overlay_click: bool = True
    show_close_button: bool = True
    auto_close: bool = False
    auto_close_delay_ms: int = 0
    tracking_enabled: bool = True


class PopupConfig(BaseModel):
    """Fully-formed popup decision. Immutable after creation."""
    model_config = _FROZEN

    id: str
    popup_type: PopupType
    trigger_rule: TriggerRule
    design: DesignSettings
    content: PopupContent
    targeting: TargetingRule = Field(default_factory=TargetingRule)
    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)
    created_at: datetime | None = None


class DisplayState(BaseModel):
    """Per-popup, per-visitor display counters (persisted client-side)."""
    model_config = _FROZEN

    display_count: int = Field(default=0, ge=0)
    last_shown_at: datetime | None = None


class VisitorPreferences(BaseModel):
    """Stored visitor/publisher preferences that shape popup policy."""
    model_config = _FROZEN

    aggressive_popups: bool | None = Field(default=None, alias="aggressivePopups")
    brand_color: str | None = Field(default=None, alias="brandColor")

    @property
    def is_non_aggressive(self) -> bool:
        return self.aggressive_popups is False


# === Automation ===

class RuleConditions(BaseModel):
    model_config = _FROZEN

    keywords: list[str] | None = None
    min_buying_intent: float | None = Field(default=None, alias="minBuyingIntent")
    categories: list[str] | None = None
    min_commission: float | None = Field(default=None, alias="minCommission")


class RuleActions(BaseModel):
    model_config = _FROZEN

    auto_create_links: bool = Field(default=False, alias="autoCreateLinks")
    auto_create_popups: bool = Field(default=False, alias="autoCreatePopups")
    notify_user: bool = Field(default=False, alias="notifyUser")


class AutomationRule(BaseModel):
    """Publisher-defined rule, externally persisted and read-only here."""
    model_config = _FROZEN

    id: str
    name: str = ""
    user_id: str = Field(default="", alias="userId")
    is_active: bool = Field(default=True, alias="isActive")
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: RuleActions = Field(default_factory=RuleActions)


# === External Interfaces ===

class TelemetryEvent(BaseModel):
    """Trigger telemetry sent fire-and-forget to the analytics collaborator."""
    model_config = _FROZEN

    event_type: TelemetryEventType
    popup_id: str
    session_id: str
    timestamp: int  # epoch milliseconds
    url: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class AnalysisRequest(BaseModel):
    model_config = _FROZEN

    url: str = ""
    title: str = ""
    content: str = ""


class AnalysisResponse(BaseModel):
    """Wire shape returned by the analysis collaborator."""
    model_config = _FROZEN

    keywords: list[str] = Field(default_factory=list)
    intent_score: float = Field(default=0.0, ge=0, le=1, alias="intentScore")
    category: str = "general"
    recommended_products: list[ScoredProduct] = Field(
        default_factory=list, alias="recommendedProducts"
    )
    should_show_popup: bool = Field(default=False, alias="shouldShowPopup")

    @classmethod
    def degraded(cls) -> AnalysisResponse:
        return cls()

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
