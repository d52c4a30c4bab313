"""Content evaluation against the rule catalog.

`Evaluator.evaluate` is pure: same content and catalog, same report. For
each rule the applicability check runs first; an inapplicable rule is
NotApplicable, an applicable one is Passed or falls back to the rule's
failure mode (Pending for most, Failed for hard requirements).
"""

from __future__ import annotations

import logging
from typing import Optional

from .catalog import Rule, RuleCatalog, default_catalog
from .errors import RuleEvaluationError, ValidationError
from .models import EvaluationReport, RuleResult, RuleStatus
from .scoring import DEFAULT_REQUIRED_THRESHOLD, summarize

logger = logging.getLogger(__name__)


def validate_content(content: object, allow_blank: bool = True) -> str:
    """Reject non-string content, and blank content unless allowed."""
    if not isinstance(content, str):
        raise ValidationError(f"content must be a string, got {type(content).__name__}")
    if not allow_blank and not content.strip():
        raise ValidationError("content must be a non-empty string")
    return content


def classify(rule: Rule, content: str) -> RuleStatus:
    try:
        if not rule.applies(content):
            return RuleStatus.NOT_APPLICABLE
        if rule.passes(content):
            return RuleStatus.PASSED
    except Exception as exc:
        raise RuleEvaluationError(rule.rule_id, exc) from exc
    return rule.failure_mode


class Evaluator:
    """Evaluates content against one shared, read-only catalog."""

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        required_threshold: float = DEFAULT_REQUIRED_THRESHOLD,
    ):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.required_threshold = required_threshold

    def evaluate(self, content: str) -> EvaluationReport:
        validate_content(content)
        results = [
            RuleResult(
                rule_id=rule.rule_id,
                category=rule.category,
                item=rule.item,
                status=classify(rule, content),
                points=rule.weight,
            )
            for rule in self.catalog
        ]
        report = summarize(results, self.required_threshold)
        logger.debug(
            "Evaluated %d chars: applicable %d%%, raw %d%% (passed=%d pending=%d failed=%d n/a=%d)",
            len(content), report.applicable_score, report.raw_score, report.passed_items,
            report.pending_items, report.failed_items, report.not_applicable_items,
        )
        return report


def evaluate(
    content: str,
    catalog: Optional[RuleCatalog] = None,
    required_threshold: float = DEFAULT_REQUIRED_THRESHOLD,
) -> EvaluationReport:
    """Convenience wrapper for a one-off evaluation."""
    return Evaluator(catalog, required_threshold).evaluate(content)
