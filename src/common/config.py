"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class AnalysisSettings(BaseModel):
    """Content analysis settings."""
    max_keywords: int = Field(default=20, gt=0)
    popup_intent_threshold: float = Field(default=0.6, ge=0, le=1)
    max_cached_analyses: int = Field(default=1024, gt=0)  # LRU of analyzed pages
    api_url: str = ""  # Remote analysis collaborator; empty = local only


class PopupSettings(BaseModel):
    """Popup targeting defaults."""
    cooldown_hours: float = Field(default=24.0, ge=0)
    max_displays_per_user: int = Field(default=3, ge=0)
    max_products: int = Field(default=3, gt=0)

    @property
    def cooldown_period_ms(self) -> int:
        return int(self.cooldown_hours * 60 * 60 * 1000)


class TrackingSettings(BaseModel):
    """Telemetry and HTTP client settings."""
    endpoint: str = "http://localhost:3000/api/analytics/track"
    enabled: bool = True
    request_timeout: float = 10.0
    max_retries: int = 3
    max_workers: int = 2


class DatabaseSettings(BaseModel):
    """Database connection settings."""
    db_path: str = str(DATA_DIR / "intent_engine.db")


class Settings(BaseModel):
    """Top-level application settings."""
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    popup: PopupSettings = Field(default_factory=PopupSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @classmethod
    def load(cls, settings_path: Path | None = None) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults.

        Environment variables override file values:
        ANALYSIS_API_URL, TRACKING_ENDPOINT, DATABASE_PATH, REQUEST_TIMEOUT.
        """
        settings_path = settings_path or CONFIG_DIR / "settings.yaml"
        data: dict = {}
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        if url := os.getenv("ANALYSIS_API_URL"):
            data.setdefault("analysis", {})["api_url"] = url
        if endpoint := os.getenv("TRACKING_ENDPOINT"):
            data.setdefault("tracking", {})["endpoint"] = endpoint
        if timeout := os.getenv("REQUEST_TIMEOUT"):
            data.setdefault("tracking", {})["request_timeout"] = float(timeout)
        if db_path := os.getenv("DATABASE_PATH"):
            data.setdefault("database", {})["db_path"] = db_path

        return cls(**data)


# Default settings instance for CLI entry points
settings = Settings.load()
