"""CLI entry point for the intent popup engine.

Usage:
    # Analyze a page and print keywords, intent, products and popup decision:
    python -m src.automation.main analyze --file page.txt \
        --catalog products.json --output out.json

    # Ask the remote analysis service instead (ANALYSIS_API_URL):
    python -m src.automation.main analyze --file page.txt --remote

    # Full pipeline: store analysis, run rules, create popup, update analytics:
    python -m src.automation.main process --file page.html --html \
        --website-id site-1 --user-id user-1 --rules rules.json --catalog products.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from src.analysis.analyzer import ContentAnalyzer, html_to_text
from src.analysis.client import AnalysisClient
from src.common.config import Settings, settings as default_settings
from src.common.database import RecordStore
from src.common.logging import setup_logging
from src.common.models import (
    AnalysisRequest,
    ContentAnalysisResult,
    Product,
    VisitorPreferences,
)
from src.popup.policy import PopupPolicyEngine

from .actions import StoreAutomationActions
from .evaluator import load_rules
from .orchestrator import AutomationOrchestrator

logger = logging.getLogger(__name__)


def _read_json_list(path: str, key: str) -> list[dict]:
    """Read a JSON list, or the ``key`` list of a JSON object."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of {key}")
    return data


def load_catalog(path: str | None) -> list[Product]:
    if not path:
        return []
    products: list[Product] = []
    for i, raw in enumerate(_read_json_list(path, "products")):
        try:
            products.append(Product.model_validate(raw))
        except ValidationError as e:
            logger.warning("Skipping invalid catalog entry #%d: %s", i, e.error_count())
    logger.info("Loaded %d products from %s", len(products), path)
    return products


def _read_page(args: argparse.Namespace) -> str:
    text = Path(args.file).read_text(encoding="utf-8")
    return html_to_text(text) if args.html else text


def _write_output(data: dict, output_path: str | None) -> None:
    rendered = json.dumps(data, ensure_ascii=False, indent=2)
    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(rendered, encoding="utf-8")
        logger.info("Output written to %s", output_path)
    else:
        print(rendered)


def _run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    request = AnalysisRequest(url=args.url, title=args.title, content=_read_page(args))
    catalog = load_catalog(args.catalog)

    analyzer = ContentAnalyzer.from_settings(settings.analysis)
    if args.remote:
        with AnalysisClient.from_settings(settings) as client:
            response = client.analyze(request)
    else:
        response = analyzer.analyze_request(request, catalog)

    output = {"analysis": response.to_wire(), "popup": None}
    if response.should_show_popup and response.recommended_products:
        preferences = VisitorPreferences(aggressive_popups=False) if args.gentle else None
        policy = PopupPolicyEngine.from_settings(settings.popup)
        analysis = ContentAnalysisResult(
            keywords=tuple(response.keywords),
            intent_score=response.intent_score,
            category=response.category,
        )
        config = policy.build(analysis, response.recommended_products, preferences)
        output["popup"] = config.model_dump(mode="json")

    _write_output(output, args.output)
    return 0


def _run_process(args: argparse.Namespace, settings: Settings) -> int:
    store = RecordStore(args.db or settings.database.db_path)
    store.initialize()

    catalog = load_catalog(args.catalog)
    if catalog:
        store.upsert_products(catalog)

    rules = load_rules(_read_json_list(args.rules, "rules")) if args.rules else []
    policy = PopupPolicyEngine.from_settings(settings.popup)
    orchestrator = AutomationOrchestrator(
        store,
        analyzer=ContentAnalyzer.from_settings(settings.analysis, store=store),
        actions=StoreAutomationActions(store, policy=policy),
    )

    summary = orchestrator.process_page(
        website_id=args.website_id,
        user_id=args.user_id,
        url=args.url,
        title=args.title,
        content=_read_page(args),
        rules=rules,
        catalog=catalog or None,
        visitor_id=args.visitor_id,
        session_id=args.session_id,
    )
    _write_output(summary.to_dict(), args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Intent popup engine")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_page_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--file", required=True, help="Page text (or HTML with --html)")
        p.add_argument("--html", action="store_true", help="Extract visible text from HTML")
        p.add_argument("--title", default="", help="Page title")
        p.add_argument("--url", default="", help="Page URL")
        p.add_argument("--catalog", help="Product catalog JSON")
        p.add_argument("--output", help="Output JSON file path (default: stdout)")

    analyze = sub.add_parser("analyze", help="Analyze a page and decide on a popup")
    add_page_args(analyze)
    analyze.add_argument("--remote", action="store_true",
                         help="Use the remote analysis service (ANALYSIS_API_URL)")
    analyze.add_argument("--gentle", action="store_true",
                         help="Visitor prefers non-aggressive popups")

    process = sub.add_parser("process", help="Run the full automation pipeline")
    add_page_args(process)
    process.add_argument("--website-id", required=True)
    process.add_argument("--user-id", required=True)
    process.add_argument("--rules", help="Automation rules JSON")
    process.add_argument("--db", help="SQLite database path")
    process.add_argument("--visitor-id", help="Visitor whose interaction history personalizes products")
    process.add_argument("--session-id", help="Visitor session whose viewed products are blended in")

    return parser


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        module_name="src",
        stream=sys.stderr,
    )
    settings = settings or default_settings

    try:
        if args.command == "analyze":
            return _run_analyze(args, settings)
        return _run_process(args, settings)
    except (OSError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
