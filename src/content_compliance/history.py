"""Report history: record finished evaluations and optimizations, query trends.

Only the final report of a request is persisted, never intermediate loop
states and never the content itself.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select

from .core.models import EvaluationReport, OptimizationResult
from .db import get_session_factory
from .sqlmodels import ReportSnapshot, UnresolvedRule

logger = logging.getLogger(__name__)

EVALUATION = "evaluation"
OPTIMIZATION = "optimization"
KINDS = (EVALUATION, OPTIMIZATION)


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _snapshot(kind: str, content: str, report: EvaluationReport, computed_at: datetime) -> ReportSnapshot:
    snapshot = ReportSnapshot(
        kind=kind,
        content_sha256=content_digest(content),
        content_length=len(content),
        raw_score=report.raw_score,
        applicable_score=report.applicable_score,
        passed_items=report.passed_items,
        failed_items=report.failed_items,
        pending_items=report.pending_items,
        not_applicable_items=report.not_applicable_items,
        compliance_level=report.compliance_level.value,
        computed_at=computed_at,
    )
    snapshot.unresolved = [
        UnresolvedRule(rule_id=r.rule_id, category=r.category.value, status=r.status.value)
        for r in report.unresolved
    ]
    return snapshot


async def record_evaluation(content: str, report: EvaluationReport) -> int:
    """Persist a one-off evaluation. Returns the snapshot id."""
    snapshot = _snapshot(EVALUATION, content, report, datetime.utcnow())
    snapshot.evaluations = 1
    snapshot.retries_used = 0

    session_factory = get_session_factory()
    async with session_factory() as session:
        session.add(snapshot)
        await session.commit()
        snapshot_id = snapshot.id

    logger.debug("Recorded evaluation %d (applicable %d%%)", snapshot_id, report.applicable_score)
    return snapshot_id


async def record_optimization(result: OptimizationResult) -> int:
    """Persist the final report of an optimization. Returns the snapshot id."""
    snapshot = _snapshot(OPTIMIZATION, result.original_content, result.report, result.computed_at)
    snapshot.final_phase = result.final_phase.value
    snapshot.retries_used = result.retries_used
    snapshot.evaluations = result.evaluations
    snapshot.promoted_count = len(result.promoted_rule_ids)

    session_factory = get_session_factory()
    async with session_factory() as session:
        session.add(snapshot)
        await session.commit()
        snapshot_id = snapshot.id

    logger.debug(
        "Recorded optimization %d (%s after %d retries)",
        snapshot_id, result.final_phase.value, result.retries_used,
    )
    return snapshot_id


async def get_report_history(kind: Optional[str] = None, limit: int = 20) -> list[dict]:
    """Retrieve the most recent stored reports, newest first.

    Args:
        kind: 'evaluation' or 'optimization'. If None, returns both.
        limit: Maximum number of reports.

    Returns:
        List of dicts with scores, counts and unresolved rule ids.
    """
    if kind is not None and kind not in KINDS:
        raise ValueError(f"kind must be one of {KINDS}, got {kind!r}")

    session_factory = get_session_factory()
    async with session_factory() as session:
        query = select(ReportSnapshot).order_by(ReportSnapshot.computed_at.desc(), ReportSnapshot.id.desc())
        if kind:
            query = query.where(ReportSnapshot.kind == kind)
        result = await session.execute(query.limit(limit))
        rows = result.scalars().all()

        unresolved_result = await session.execute(
            select(UnresolvedRule.snapshot_id, UnresolvedRule.rule_id)
            .where(UnresolvedRule.snapshot_id.in_([r.id for r in rows]))
            .order_by(UnresolvedRule.id)
        )
        unresolved: dict[int, list[str]] = {}
        for snapshot_id, rule_id in unresolved_result:
            unresolved.setdefault(snapshot_id, []).append(rule_id)

    return [
        {
            "id": r.id,
            "kind": r.kind,
            "content_sha256": r.content_sha256,
            "content_length": r.content_length,
            "final_phase": r.final_phase,
            "retries_used": r.retries_used,
            "evaluations": r.evaluations,
            "raw_score": r.raw_score,
            "applicable_score": r.applicable_score,
            "passed_items": r.passed_items,
            "failed_items": r.failed_items,
            "pending_items": r.pending_items,
            "not_applicable_items": r.not_applicable_items,
            "compliance_level": r.compliance_level,
            "promoted_count": r.promoted_count,
            "unresolved_rule_ids": unresolved.get(r.id, []),
            "computed_at": r.computed_at.isoformat(),
        }
        for r in rows
    ]


async def get_rule_trends(days: int = 30, limit: int = 10) -> dict:
    """Which rules are most often left unresolved within the last `days` days.

    Returns the number of reports in the window and, per rule, how many of
    them left it unresolved and the share that represents.
    """
    cutoff = datetime.utcnow() - timedelta(days=days)
    session_factory = get_session_factory()

    async with session_factory() as session:
        total = await session.scalar(
            select(func.count(ReportSnapshot.id)).where(ReportSnapshot.computed_at >= cutoff)
        )
        unresolved_count = func.count(UnresolvedRule.id).label("unresolved_count")
        result = await session.execute(
            select(UnresolvedRule.rule_id, UnresolvedRule.category, unresolved_count)
            .join(ReportSnapshot, UnresolvedRule.snapshot_id == ReportSnapshot.id)
            .where(ReportSnapshot.computed_at >= cutoff)
            .group_by(UnresolvedRule.rule_id, UnresolvedRule.category)
            .order_by(unresolved_count.desc(), UnresolvedRule.rule_id)
            .limit(limit)
        )
        rows = result.all()

    total = total or 0
    return {
        "days": days,
        "reports": total,
        "rules": [
            {
                "rule_id": rule_id,
                "category": category,
                "unresolved_count": count,
                "unresolved_share": round(count / total, 3) if total else 0.0,
            }
            for rule_id, category, count in rows
        ],
    }
