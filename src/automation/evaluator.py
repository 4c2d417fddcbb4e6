"""Automation rule evaluation.

A rule fires when every condition it specifies holds:
- keywords: at least one rule keyword appears in the analysis keywords
  (case-insensitive)
- min_buying_intent: intent_score >= threshold
- categories: analysis category is one of them
- min_commission: some recommended product has commission_rate >= threshold

Unset or empty conditions are vacuously true. Each rule is evaluated in
isolation: an exception in one rule is logged and recorded, and evaluation
continues with the next rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

from pydantic import ValidationError

from src.common.database import RecordStore
from src.common.models import (
    AutomationRule,
    ContentAnalysisResult,
    RuleConditions,
    ScoredProduct,
)

logger = logging.getLogger(__name__)

MAX_AUTO_LINKS = 5


class AutomationActions(Protocol):
    """Link, popup and notification collaborators triggered by rules."""

    def create_links(self, user_id: str, website_id: str, products: Sequence[ScoredProduct]) -> list: ...

    def create_popup(
        self,
        user_id: str,
        website_id: str,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
    ) -> str | None: ...

    def notify_user(
        self,
        user_id: str,
        rule_name: str,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
    ) -> None: ...


@dataclass
class RuleOutcome:
    rule_id: str
    fired: bool = False
    actions: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "fired": self.fired,
            "actions": list(self.actions),
            "error": self.error,
        }


@dataclass
class EvaluationReport:
    outcomes: list[RuleOutcome] = field(default_factory=list)
    skipped: int = 0

    @property
    def fired(self) -> list[RuleOutcome]:
        return [o for o in self.outcomes if o.fired]

    @property
    def errored(self) -> list[RuleOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def popup_created(self) -> bool:
        return any("create_popup" in o.actions for o in self.fired)

    def to_dict(self) -> dict:
        return {
            "evaluated": len(self.outcomes),
            "fired": len(self.fired),
            "errored": len(self.errored),
            "skipped": self.skipped,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def load_rules(raw_rules: Iterable[dict]) -> list[AutomationRule]:
    """Validate rule JSON, skipping (and logging) invalid entries."""
    rules: list[AutomationRule] = []
    for i, raw in enumerate(raw_rules):
        try:
            rules.append(AutomationRule.model_validate(raw))
        except ValidationError as e:
            logger.warning("Skipping invalid automation rule #%d: %s", i, e.error_count())
    return rules


def conditions_met(
    conditions: RuleConditions,
    analysis: ContentAnalysisResult,
    products: Sequence[ScoredProduct],
) -> bool:
    if conditions.keywords:
        content_keywords = {kw.lower() for kw in analysis.keywords}
        if not any(kw.lower() in content_keywords for kw in conditions.keywords):
            return False

    if conditions.min_buying_intent:
        if analysis.intent_score < conditions.min_buying_intent:
            return False

    if conditions.categories:
        if analysis.category not in conditions.categories:
            return False

    if conditions.min_commission:
        if not any(p.commission_rate >= conditions.min_commission for p in products):
            return False

    return True


class AutomationRuleEvaluator:
    """Runs publisher automation rules against one analysis result.

    Usage:
        evaluator = AutomationRuleEvaluator(actions, store)
        report = evaluator.evaluate(rules, analysis, products, website_id="site-1")
    """

    def __init__(self, actions: AutomationActions, store: RecordStore | None = None):
        self.actions = actions
        self.store = store

    def evaluate(
        self,
        rules: Iterable[AutomationRule],
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
        website_id: str = "",
        analysis_id: int | None = None,
    ) -> EvaluationReport:
        report = EvaluationReport()
        for rule in rules:
            if not rule.is_active:
                report.skipped += 1
                continue
            report.outcomes.append(
                self._evaluate_rule(rule, analysis, products, website_id, analysis_id)
            )

        logger.info(
            "Evaluated %d rules: %d fired, %d errored, %d inactive",
            len(report.outcomes), len(report.fired), len(report.errored), report.skipped,
        )
        return report

    def _evaluate_rule(
        self,
        rule: AutomationRule,
        analysis: ContentAnalysisResult,
        products: Sequence[ScoredProduct],
        website_id: str,
        analysis_id: int | None,
    ) -> RuleOutcome:
        outcome = RuleOutcome(rule_id=rule.id)
        try:
            if not conditions_met(rule.conditions, analysis, products):
                return outcome

            logger.info("Automation rule '%s' triggered", rule.name or rule.id)
            outcome.fired = True
            actions = rule.actions

            if actions.auto_create_links:
                self.actions.create_links(rule.user_id, website_id, products[:MAX_AUTO_LINKS])
                outcome.actions.append("create_links")
            if actions.auto_create_popups:
                self.actions.create_popup(rule.user_id, website_id, analysis, products)
                outcome.actions.append("create_popup")
            if actions.notify_user:
                self.actions.notify_user(rule.user_id, rule.name, analysis, products)
                outcome.actions.append("notify_user")

            if self.store is not None:
                self.store.log_automation_execution(
                    rule.id, analysis_id, actions.model_dump(by_alias=True)
                )
        except Exception as e:
            logger.error("Automation rule %s failed: %s", rule.id, e)
            outcome.error = str(e)
        return outcome
