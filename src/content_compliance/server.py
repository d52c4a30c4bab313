"""Content Compliance MCP App Server.

FastMCP server with 6 tools and an MCP Apps interactive UI.
Run: content-compliance-mcp
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import get_app_html
from .core.catalog import default_catalog
from .core.evaluator import Evaluator, validate_content
from .core.models import Category, EvaluationReport, OptimizationConfig
from .core.orchestrator import ConvergenceOrchestrator
from .core.scoring import DEFAULT_REQUIRED_THRESHOLD, recommendations
from .db import close_db, init_db
from .history import KINDS, get_report_history, get_rule_trends, record_evaluation, record_optimization

logger = logging.getLogger(__name__)

MCP_APP_MIME = "text/html;profile=mcp-app"

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the history database."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "Content Compliance",
    instructions="Score content against a 111-rule SEO and AI-discoverability checklist, see what is missing, and optimize it until it reaches a target score.",
    lifespan=lifespan,
)


# ─── Configuration ───────────────────────────────────────────────────────────


def _env_number(name: str, cast: Callable[[str], float], default):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _default_config() -> OptimizationConfig:
    """Optimization defaults, overridable through COMPLIANCE_* environment variables."""
    defaults = OptimizationConfig()
    return OptimizationConfig(
        target_applicable_score=_env_number("COMPLIANCE_TARGET_SCORE", float, defaults.target_applicable_score),
        target_absolute_points=_env_number("COMPLIANCE_TARGET_POINTS", int, defaults.target_absolute_points),
        max_retries=_env_number("COMPLIANCE_MAX_RETRIES", int, defaults.max_retries),
        promotion_buffer=_env_number("COMPLIANCE_PROMOTION_BUFFER", int, defaults.promotion_buffer),
        time_budget_seconds=_env_number("COMPLIANCE_TIME_BUDGET_SECONDS", float, defaults.time_budget_seconds),
    )


async def _record(write: Callable[..., Awaitable[int]], *args) -> Optional[int]:
    """Store a report in the history database. History is auxiliary, so failures are only logged."""
    try:
        return await write(*args)
    except Exception:
        logger.warning("Could not record report history", exc_info=True)
        return None


def _report_summary(report: EvaluationReport) -> dict:
    data = report.model_dump(mode="json", exclude={"results"})
    data["unresolved_rule_ids"] = report.unresolved_rule_ids
    return data


# ─── MCP Apps UI Resource ─────────────────────────────────────────────────────

APP_RESOURCE_URI = "ui://content-compliance/app"


@mcp.resource(
    APP_RESOURCE_URI,
    mime_type=MCP_APP_MIME,
)
def app_ui() -> str:
    """Content Compliance — checklist scores, optimization runs and history."""
    return get_app_html()


# ─── Tool 1: Evaluate ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compliance_evaluate(content: str, threshold: float = DEFAULT_REQUIRED_THRESHOLD) -> dict:
    """Score content against the 111-rule compliance checklist without changing it.

    Args:
        content: The text or markdown to evaluate.
        threshold: Applicable score (0-100) needed for an 'excellent' rating. Default 90.
    """
    validate_content(content, allow_blank=False)
    if not 0 <= threshold <= 100:
        raise ValueError(f"threshold must be between 0 and 100, got {threshold}")

    catalog = default_catalog()
    report = Evaluator(catalog, threshold).evaluate(content)
    recs = recommendations(report, catalog)
    snapshot_id = await _record(record_evaluation, content, report)

    return {
        "title": "Compliance Evaluation",
        "report": _report_summary(report),
        "results": [r.model_dump(mode="json") for r in report.results],
        "recommendations": [r.model_dump(mode="json") for r in recs],
        "history_id": snapshot_id,
        "summary": (
            f"Applicable score {report.applicable_score}% ({report.compliance_level.value}), "
            f"raw score {report.raw_score}%. {report.passed_items} passed, {report.failed_items} failed, "
            f"{report.pending_items} pending, {report.not_applicable_items} not applicable."
        ),
    }


# ─── Tool 2: Optimize ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compliance_optimize(
    content: str,
    target_score: Optional[float] = None,
    target_points: Optional[int] = None,
    max_retries: Optional[int] = None,
) -> dict:
    """Add the missing checklist pieces to content until it meets the target, within a retry budget.

    Returns the optimized content; the caller's original is never modified.

    Args:
        content: The text or markdown to optimize.
        target_score: Applicable score (0-100) to reach. Default 90.
        target_points: Passed rules to reach. Default 90% of the catalog (100).
        max_retries: Maximum remediation passes. Default 5.
    """
    validate_content(content, allow_blank=False)
    overrides = {
        "target_applicable_score": target_score,
        "target_absolute_points": target_points,
        "max_retries": max_retries,
    }
    base = _default_config().model_dump()
    base.update({k: v for k, v in overrides.items() if v is not None})
    config = OptimizationConfig(**base)

    orchestrator = ConvergenceOrchestrator(default_catalog())
    result = await asyncio.to_thread(orchestrator.run, content, config)
    snapshot_id = await _record(record_optimization, result)

    report = result.report
    return {
        "title": "Compliance Optimization",
        "content": result.content,
        "final_phase": result.final_phase.value,
        "satisfied": result.satisfied,
        "retries_used": result.retries_used,
        "evaluations": result.evaluations,
        "report": _report_summary(report),
        "iterations": [i.model_dump(mode="json") for i in result.iterations],
        "promoted_rule_ids": result.promoted_rule_ids,
        "added_characters": len(result.content) - len(result.original_content),
        "history_id": snapshot_id,
        "summary": (
            f"{result.final_phase.value.capitalize()} after {result.retries_used} retries: "
            f"{report.passed_items} rules passed, applicable score {report.applicable_score}% "
            f"({report.compliance_level.value})."
            + (f" Promoted {len(result.promoted_rule_ids)} not-applicable rule(s)." if result.promoted_rule_ids else "")
        ),
    }


# ─── Tool 3: Catalog ─────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compliance_catalog(category: str = "") -> dict:
    """List the checklist rules, what satisfies each one, and the marker that remediation adds.

    Args:
        category: Filter to one category (e.g., 'Meta Tags', 'Voice Search'). Leave empty for all.
    """
    catalog = default_catalog()
    rules = catalog.rules
    if category:
        match = next((c for c in Category if c.value.lower() == category.strip().lower()), None)
        if match is None:
            raise ValueError(f"Unknown category {category!r}. Valid: {', '.join(c.value for c in Category)}")
        rules = catalog.in_category(match)

    return {
        "title": "Compliance Checklist",
        "category": category or None,
        "rules": [
            {
                "rule_id": r.rule_id,
                "category": r.category.value,
                "item": r.item,
                "description": r.description,
                "signal": r.signal_description,
                "marker": r.marker,
                "failure_mode": r.failure_mode.value,
                "conditional": r.conditional,
                "weight": r.weight,
            }
            for r in rules
        ],
        "count": len(rules),
        "categories": {c.value: len(catalog.in_category(c)) for c in catalog.categories},
        "summary": f"{len(rules)} of {len(catalog)} rules" + (f" in {category}" if category else "") + ".",
    }


# ─── Tool 4: History (Stateful) ──────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compliance_history(kind: str = "", limit: int = 20) -> dict:
    """Recent evaluations and optimizations — final scores and unresolved rules, tracked locally.

    Args:
        kind: 'evaluation' or 'optimization'. Leave empty for both.
        limit: Maximum number of reports. Default 20.
    """
    if kind and kind not in KINDS:
        raise ValueError(f"kind must be one of {', '.join(KINDS)} or empty, got {kind!r}")
    reports = await get_report_history(kind=kind or None, limit=limit)

    return {
        "title": "Compliance History",
        "kind": kind or None,
        "reports": reports,
        "count": len(reports),
        "summary": (
            f"{len(reports)} recent report(s). Latest applicable score: {reports[0]['applicable_score']}%."
            if reports else "No reports recorded yet."
        ),
    }


# ─── Tool 5: Rule Trends (Stateful) ──────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compliance_rule_trends(days: int = 30, limit: int = 10) -> dict:
    """Which checklist rules are most often left unresolved across recent reports.

    Args:
        days: Look back this many days. Default 30.
        limit: Maximum number of rules. Default 10.
    """
    trends = await get_rule_trends(days=days, limit=limit)
    top = trends["rules"]

    if not top:
        summary = f"No unresolved rules recorded in the last {days} days."
    else:
        summary = f"Across {trends['reports']} report(s) in the last {days} days, most often unresolved: " + ", ".join(
            f"{r['rule_id']} ({r['unresolved_count']})" for r in top[:5]
        ) + "."

    return {
        "title": "Rule Trends",
        **trends,
        "summary": summary,
    }


# ─── Tool 6: Open MCP App (Interactive UI) ──────────────────────────────────


@mcp.tool(annotations=READ_ONLY, meta={"ui": {"resourceUri": APP_RESOURCE_URI}})
async def open_compliance_app() -> dict:
    """Open the Content Compliance app — checklist overview, recent scores and rule trends."""
    catalog = default_catalog()
    try:
        recent = await get_report_history(limit=5)
    except Exception:
        logger.warning("Could not load report history", exc_info=True)
        recent = []

    return {
        "title": "Content Compliance",
        "catalog": {
            "total_rules": len(catalog),
            "max_points": catalog.max_points,
            "categories": {c.value: len(catalog.in_category(c)) for c in catalog.categories},
        },
        "recent_reports": recent,
        "summary": f"{len(catalog)} rules in {len(catalog.categories)} categories. "
        + (f"{len(recent)} recent report(s)." if recent else "No reports recorded yet."),
    }


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
