"""Score calculation for evaluation reports.

Two scores come out of every evaluation:

- raw score: earned points over every rule's weight, NotApplicable included;
- applicable score: earned points over the weight of applicable rules only.

The applicable score drives the compliance level. NotApplicable rules can
still earn nothing, so the raw score is always the stricter of the two.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .catalog import RuleCatalog
from .models import (
    Category,
    CategoryScore,
    ComplianceLevel,
    EvaluationReport,
    Recommendation,
    RuleResult,
    RuleStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_THRESHOLD = 90


def percent(earned: int, maximum: int) -> int:
    """Rounded percentage, half up; 100 when there is nothing to earn."""
    if maximum <= 0:
        return 100
    return min(100, max(0, int(earned * 100 / maximum + 0.5)))


def compliance_level(applicable_score: float, threshold: float = DEFAULT_REQUIRED_THRESHOLD) -> ComplianceLevel:
    if applicable_score >= threshold:
        return ComplianceLevel.EXCELLENT
    return ComplianceLevel.NEEDS_IMPROVEMENT


def score_categories(results: Iterable[RuleResult]) -> tuple[CategoryScore, ...]:
    """Per-category breakdown, categories in first-seen order."""
    grouped: dict[Category, list[RuleResult]] = {}
    for result in results:
        grouped.setdefault(result.category, []).append(result)

    scores = []
    for category, items in grouped.items():
        earned = sum(r.points for r in items if r.status == RuleStatus.PASSED)
        maximum = sum(r.points for r in items)
        applicable_max = sum(r.points for r in items if r.status != RuleStatus.NOT_APPLICABLE)
        scores.append(CategoryScore(
            category=category,
            total_items=len(items),
            passed_items=sum(1 for r in items if r.status == RuleStatus.PASSED),
            earned_points=earned,
            max_points=maximum,
            applicable_max_points=applicable_max,
            percentage=percent(earned, applicable_max),
        ))
    return tuple(scores)


def summarize(
    results: Sequence[RuleResult],
    threshold: float = DEFAULT_REQUIRED_THRESHOLD,
) -> EvaluationReport:
    """Aggregate rule results into a report with counts, both scores and a level."""
    counts = {status: 0 for status in RuleStatus}
    for result in results:
        counts[result.status] += 1

    earned = sum(r.points for r in results if r.status == RuleStatus.PASSED)
    maximum = sum(r.points for r in results)
    applicable_max = sum(r.points for r in results if r.status != RuleStatus.NOT_APPLICABLE)
    applicable_score = percent(earned, applicable_max)

    return EvaluationReport(
        results=tuple(results),
        total_items=len(results),
        passed_items=counts[RuleStatus.PASSED],
        failed_items=counts[RuleStatus.FAILED],
        pending_items=counts[RuleStatus.PENDING],
        not_applicable_items=counts[RuleStatus.NOT_APPLICABLE],
        earned_points=earned,
        max_points=maximum,
        applicable_max_points=applicable_max,
        raw_score=percent(earned, maximum),
        applicable_score=applicable_score,
        required_threshold=threshold,
        compliance_level=compliance_level(applicable_score, threshold),
        categories=score_categories(results),
    )


def recommendations(report: EvaluationReport, catalog: RuleCatalog) -> list[Recommendation]:
    """One recommendation per unresolved rule, Failed before Pending, catalog order within each."""
    ordered = report.with_status(RuleStatus.FAILED) + report.with_status(RuleStatus.PENDING)
    recs = []
    for result in ordered:
        rule = catalog.get(result.rule_id)
        if result.status == RuleStatus.FAILED:
            action = f"Hard requirement: {rule.description.lower()}. Add '{rule.marker}' or satisfy: {rule.signal_description}"
        else:
            action = f"Add '{rule.marker}' or satisfy: {rule.signal_description}"
        recs.append(Recommendation(
            rule_id=rule.rule_id,
            category=rule.category,
            item=rule.item,
            status=result.status,
            action=action,
        ))
    return recs
