"""SQLite record store for the intent popup engine.

Provides connection management, table initialization, and the
read/write/upsert operations used by analysis, recommendation and
automation. The rest of the code treats this as an opaque store.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .config import settings
from .models import ContentAnalysisResult, PopupConfig, Product

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS content_analysis (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    website_id TEXT NOT NULL,
    content_url TEXT NOT NULL DEFAULT '',
    content_hash TEXT NOT NULL,
    keywords TEXT NOT NULL DEFAULT '[]',
    category TEXT NOT NULL DEFAULT 'general',
    buying_intent_score REAL NOT NULL DEFAULT 0,
    sentiment TEXT NOT NULL DEFAULT 'neutral',
    analysis_score INTEGER NOT NULL DEFAULT 0,
    result_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT '',
    price REAL,
    currency TEXT NOT NULL DEFAULT 'USD',
    commission_rate REAL NOT NULL DEFAULT 0,
    affiliate_url TEXT,
    image_url TEXT
);

CREATE TABLE IF NOT EXISTS popups (
    id TEXT PRIMARY KEY,
    website_id TEXT NOT NULL,
    name TEXT NOT NULL,
    config_json TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_interactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    website_id TEXT NOT NULL DEFAULT '',
    session_id TEXT NOT NULL DEFAULT '',
    user_id TEXT,
    event_type TEXT NOT NULL,
    product_id TEXT,
    popup_id TEXT,
    event_value REAL,
    metadata TEXT NOT NULL DEFAULT '{}',
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS affiliate_links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    website_id TEXT NOT NULL DEFAULT '',
    product_id TEXT NOT NULL,
    original_url TEXT NOT NULL,
    tracked_url TEXT NOT NULL,
    short_code TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS automation_executions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    rule_id TEXT NOT NULL,
    content_analysis_id INTEGER,
    actions_executed TEXT NOT NULL,
    executed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS website_analytics (
    website_id TEXT NOT NULL,
    date TEXT NOT NULL,
    posts_analyzed INTEGER NOT NULL DEFAULT 0,
    keywords_extracted INTEGER NOT NULL DEFAULT 0,
    products_recommended INTEGER NOT NULL DEFAULT 0,
    avg_buying_intent REAL NOT NULL DEFAULT 0,
    PRIMARY KEY (website_id, date)
);

CREATE INDEX IF NOT EXISTS idx_analysis_hash ON content_analysis(content_hash);
CREATE INDEX IF NOT EXISTS idx_interactions_user ON user_interactions(user_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_interactions_session ON user_interactions(session_id, timestamp);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Get a SQLite connection with row factory enabled."""
    path = db_path or settings.database.db_path
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: str | None = None) -> None:
    """Create all tables if they don't exist."""
    conn = get_connection(db_path)
    try:
        conn.executescript(_CREATE_TABLES_SQL)
        conn.commit()
    finally:
        conn.close()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore:
    """Read/write/upsert access to persisted records.

    Each operation opens and closes its own connection, so one store can be
    shared by independent analysis calls.

    Usage:
        store = RecordStore("data/intent_engine.db")
        store.initialize()
        analysis_id = store.save_analysis("site-1", url, result)
    """

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or settings.database.db_path

    def initialize(self) -> None:
        init_db(self.db_path)

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(sql, tuple(params))
            conn.commit()
            return cursor
        finally:
            conn.close()

    def _query(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        conn = get_connection(self.db_path)
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        finally:
            conn.close()

    # --- Content Analysis ---

    def save_analysis(
        self, website_id: str, content_url: str, result: ContentAnalysisResult
    ) -> int:
        """Insert an analysis row. Returns the new row id."""
        cursor = self._execute(
            """INSERT INTO content_analysis
               (website_id, content_url, content_hash, keywords, category,
                buying_intent_score, sentiment, analysis_score, result_json, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                website_id,
                content_url,
                result.content_hash,
                json.dumps(list(result.keywords)),
                result.category,
                result.intent_score,
                result.sentiment.value,
                result.content_score,
                result.model_dump_json(),
                _now_iso(),
            ),
        )
        return int(cursor.lastrowid)

    def find_analysis_by_hash(self, content_hash: str) -> ContentAnalysisResult | None:
        """Most recent stored analysis for identical text, if any."""
        rows = self._query(
            "SELECT result_json FROM content_analysis WHERE content_hash = ? "
            "ORDER BY id DESC LIMIT 1",
            (content_hash,),
        )
        if not rows:
            return None
        return ContentAnalysisResult.model_validate_json(rows[0]["result_json"])

    # --- Products ---

    def upsert_products(self, products: Iterable[Product]) -> int:
        conn = get_connection(self.db_path)
        count = 0
        try:
            for p in products:
                conn.execute(
                    """INSERT INTO products
                       (id, name, description, category, price, currency,
                        commission_rate, affiliate_url, image_url)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET
                         name=excluded.name, description=excluded.description,
                         category=excluded.category, price=excluded.price,
                         currency=excluded.currency,
                         commission_rate=excluded.commission_rate,
                         affiliate_url=excluded.affiliate_url,
                         image_url=excluded.image_url""",
                    (
                        p.id, p.name, p.description, p.category, p.price,
                        p.currency, p.commission_rate, p.affiliate_url, p.image_url,
                    ),
                )
                count += 1
            conn.commit()
        finally:
            conn.close()
        return count

    def get_products(
        self,
        category_like: str | None = None,
        ids: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Product]:
        """Fetch products by category substring and/or id list.

        When ``ids`` is given, results follow the order of ``ids``.
        """
        sql = "SELECT * FROM products WHERE 1=1"
        params: list[Any] = []
        if category_like:
            sql += " AND lower(category) LIKE ?"
            params.append(f"%{category_like.lower()}%")
        if ids is not None:
            if not ids:
                return []
            sql += f" AND id IN ({','.join('?' * len(ids))})"
            params.extend(ids)
        sql += " ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        products = [Product.model_validate(dict(row)) for row in self._query(sql, params)]
        if ids is not None:
            order = {pid: i for i, pid in enumerate(ids)}
            products.sort(key=lambda p: order.get(p.id, len(order)))
        return products

    # --- Popups ---

    def save_popup(self, website_id: str, name: str, config: PopupConfig) -> str:
        self._execute(
            "INSERT INTO popups (id, website_id, name, config_json, status, created_at) "
            "VALUES (?, ?, ?, ?, 'active', ?)",
            (config.id, website_id, name, config.model_dump_json(), _now_iso()),
        )
        return config.id

    def get_popup(self, popup_id: str) -> PopupConfig | None:
        rows = self._query("SELECT config_json FROM popups WHERE id = ?", (popup_id,))
        if not rows:
            return None
        return PopupConfig.model_validate_json(rows[0]["config_json"])

    # --- Interactions ---

    def record_interaction(
        self,
        event_type: str,
        website_id: str = "",
        session_id: str = "",
        user_id: str | None = None,
        product_id: str | None = None,
        popup_id: str | None = None,
        value: float | None = None,
        metadata: dict | None = None,
    ) -> None:
        self._execute(
            """INSERT INTO user_interactions
               (website_id, session_id, user_id, event_type, product_id,
                popup_id, event_value, metadata, timestamp)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                website_id, session_id, user_id, event_type, product_id,
                popup_id, value, json.dumps(metadata or {}), _now_iso(),
            ),
        )

    def recent_interactions(
        self,
        user_id: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
    ) -> list[dict]:
        """Most recent interactions first, filtered by user or session."""
        if user_id is None and session_id is None:
            return []
        if user_id is not None:
            where, key = "user_id = ?", user_id
        else:
            where, key = "session_id = ?", session_id
        rows = self._query(
            f"SELECT * FROM user_interactions WHERE {where} "
            "ORDER BY timestamp DESC, id DESC LIMIT ?",
            (key, limit),
        )
        return [dict(row) for row in rows]

    # --- Affiliate Links ---

    def save_affiliate_link(
        self,
        user_id: str,
        product_id: str,
        original_url: str,
        tracked_url: str,
        short_code: str,
        website_id: str = "",
    ) -> int:
        cursor = self._execute(
            """INSERT INTO affiliate_links
               (user_id, website_id, product_id, original_url, tracked_url,
                short_code, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (user_id, website_id, product_id, original_url, tracked_url,
             short_code, _now_iso()),
        )
        return int(cursor.lastrowid)

    def affiliate_links(self, user_id: str) -> list[dict]:
        rows = self._query(
            "SELECT * FROM affiliate_links WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [dict(row) for row in rows]

    # --- Automation ---

    def log_automation_execution(
        self, rule_id: str, analysis_id: int | None, actions: dict
    ) -> None:
        self._execute(
            "INSERT INTO automation_executions "
            "(rule_id, content_analysis_id, actions_executed, executed_at) "
            "VALUES (?, ?, ?, ?)",
            (rule_id, analysis_id, json.dumps(actions), _now_iso()),
        )

    def automation_executions(self, rule_id: str | None = None) -> list[dict]:
        if rule_id is None:
            rows = self._query("SELECT * FROM automation_executions ORDER BY id")
        else:
            rows = self._query(
                "SELECT * FROM automation_executions WHERE rule_id = ? ORDER BY id",
                (rule_id,),
            )
        return [dict(row) for row in rows]

    def add_notification(
        self, user_id: str, kind: str, title: str, message: str, data: dict | None = None
    ) -> None:
        self._execute(
            "INSERT INTO notifications (user_id, type, title, message, data, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, kind, title, message, json.dumps(data or {}), _now_iso()),
        )

    def notifications(self, user_id: str) -> list[dict]:
        rows = self._query(
            "SELECT * FROM notifications WHERE user_id = ? ORDER BY id", (user_id,)
        )
        return [dict(row) for row in rows]

    # --- Analytics ---

    def upsert_daily_analytics(
        self,
        website_id: str,
        day: date,
        keywords_extracted: int,
        products_recommended: int,
        buying_intent: float,
    ) -> dict:
        """Fold one analyzed post into the (website, day) analytics row.

        Counts are summed; avg_buying_intent is a running average weighted
        by posts_analyzed.
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                """INSERT INTO website_analytics
                   (website_id, date, posts_analyzed, keywords_extracted,
                    products_recommended, avg_buying_intent)
                   VALUES (?, ?, 1, ?, ?, ?)
                   ON CONFLICT(website_id, date) DO UPDATE SET
                     avg_buying_intent =
                       (avg_buying_intent * posts_analyzed + excluded.avg_buying_intent)
                       / (posts_analyzed + 1),
                     posts_analyzed = posts_analyzed + 1,
                     keywords_extracted = keywords_extracted + excluded.keywords_extracted,
                     products_recommended =
                       products_recommended + excluded.products_recommended""",
                (website_id, day.isoformat(), keywords_extracted,
                 products_recommended, buying_intent),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM website_analytics WHERE website_id = ? AND date = ?",
                (website_id, day.isoformat()),
            ).fetchone()
        finally:
            conn.close()
        return dict(row)

    def get_daily_analytics(self, website_id: str, day: date) -> dict | None:
        rows = self._query(
            "SELECT * FROM website_analytics WHERE website_id = ? AND date = ?",
            (website_id, day.isoformat()),
        )
        return dict(rows[0]) if rows else None
