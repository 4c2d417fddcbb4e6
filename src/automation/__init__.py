# Automation — publisher rules and the end-to-end page pipeline
"""
Automation modules:
- evaluator: rule conditions, per-rule isolation, execution log
- actions: record-store backed links, popups and notifications
- links: UTM-tagged affiliate tracking links
- orchestrator: analyze -> store -> recommend -> rules -> popup -> analytics
- main: command-line interface
"""

from .actions import StoreAutomationActions
from .evaluator import AutomationRuleEvaluator, EvaluationReport, RuleOutcome, load_rules
from .links import TrackingLink, TrackingLinkBuilder
from .orchestrator import AutomationOrchestrator, ProcessingSummary

__all__ = [
    "AutomationRuleEvaluator",
    "AutomationOrchestrator",
    "StoreAutomationActions",
    "EvaluationReport",
    "ProcessingSummary",
    "RuleOutcome",
    "TrackingLink",
    "TrackingLinkBuilder",
    "load_rules",
]
