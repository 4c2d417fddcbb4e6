"""Shared test fixtures for the intent popup engine."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.database import RecordStore
from src.common.models import (
    ContentAnalysisResult,
    DesignSettings,
    PopupConfig,
    PopupContent,
    PopupType,
    Product,
    Sentiment,
    TargetingRule,
    TriggerRule,
)

from fixtures.sample_catalog import SAMPLE_CATALOG, SAMPLE_RULES


HIGH_INTENT_TEXT = "Best budget wireless headphones review: compare top deals"


class FakeClock:
    """Manually advanced clock for trigger and policy tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> RecordStore:
    """Provide an initialized RecordStore on a temporary SQLite database."""
    record_store = RecordStore(str(tmp_path / "test_intent.db"))
    record_store.initialize()
    return record_store


@pytest.fixture
def catalog() -> list[Product]:
    return [Product.model_validate(p) for p in SAMPLE_CATALOG]


@pytest.fixture
def raw_rules() -> list[dict]:
    return [dict(r) for r in SAMPLE_RULES]


@pytest.fixture
def high_intent_analysis() -> ContentAnalysisResult:
    return ContentAnalysisResult(
        keywords=("best", "budget", "review", "compare", "deals", "wireless", "headphones"),
        intent_score=0.85,
        category="technology",
        sentiment=Sentiment.POSITIVE,
        content_hash="abc123",
    )


@pytest.fixture
def low_intent_analysis() -> ContentAnalysisResult:
    return ContentAnalysisResult(
        keywords=("garden", "flowers", "spring"),
        intent_score=0.2,
        category="home",
        content_hash="def456",
    )


def make_popup_config(
    popup_id: str = "popup-1",
    scroll_percentage: float | None = 30,
    time_delay_ms: int | None = 3000,
    exit_intent: bool = True,
    max_displays: int = 3,
    cooldown_ms: int = 24 * 60 * 60 * 1000,
) -> PopupConfig:
    """Build a minimal PopupConfig for trigger tests."""
    return PopupConfig(
        id=popup_id,
        popup_type=PopupType.SLIDE_IN_BOTTOM,
        trigger_rule=TriggerRule(
            scroll_percentage=scroll_percentage,
            time_delay_ms=time_delay_ms,
            exit_intent=exit_intent,
        ),
        design=DesignSettings(template=PopupType.SLIDE_IN_BOTTOM),
        content=PopupContent(headline="h", description="d", cta_text="Shop Now"),
        targeting=TargetingRule(max_displays_per_user=max_displays, cooldown_period_ms=cooldown_ms),
    )
