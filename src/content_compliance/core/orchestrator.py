"""Evaluate/remediate convergence loop.

The loop is split in two:

- `advance(state, event)` is a pure reducer over LoopState. It decides
  every transition (Satisfied, Exhausted, back to Remediating) and knows
  nothing about content, logging or time.
- `ConvergenceOrchestrator.run` is the driver. It owns the content,
  calls the Evaluator and Remediator, feeds the resulting events to the
  reducer and checks for cancellation before each remediation.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

from .catalog import RuleCatalog, default_catalog
from .evaluator import Evaluator, validate_content
from .models import (
    Cancelled,
    EvaluationReport,
    Evaluated,
    IterationRecord,
    LoopEvent,
    LoopPhase,
    LoopState,
    OptimizationConfig,
    OptimizationResult,
    Remediated,
    RuleResult,
    RuleStatus,
)
from .remediation import Remediator

logger = logging.getLogger(__name__)

DEFAULT_TARGET_RATIO = 0.9

CancelCheck = Callable[[], bool]


# ─── Reducer ─────────────────────────────────────────────────────────────────


def is_satisfied(report: EvaluationReport, target_applicable_score: float, target_absolute_points: int) -> bool:
    return report.passed_items >= target_absolute_points and report.applicable_score >= target_applicable_score


def advance(state: LoopState, event: LoopEvent) -> LoopState:
    """Apply one event to the loop state and return the next state."""
    if state.phase.terminal:
        raise ValueError(f"loop already finished ({state.phase.value}); got {event.kind}")

    if isinstance(event, Cancelled):
        return state.model_copy(update={"phase": LoopPhase.CANCELLED})

    if isinstance(event, Evaluated):
        if state.phase != LoopPhase.EVALUATING:
            raise ValueError(f"unexpected evaluation while {state.phase.value}")
        report = event.report
        if is_satisfied(report, state.target_applicable_score, state.target_absolute_points):
            phase = LoopPhase.SATISFIED
        elif state.retries >= state.max_retries:
            phase = LoopPhase.EXHAUSTED
        else:
            phase = LoopPhase.REMEDIATING
        return state.model_copy(update={
            "phase": phase,
            "evaluations": state.evaluations + 1,
            "report": report,
        })

    if isinstance(event, Remediated):
        if state.phase != LoopPhase.REMEDIATING:
            raise ValueError(f"unexpected remediation while {state.phase.value}")
        return state.model_copy(update={
            "phase": LoopPhase.EVALUATING,
            "retries": state.retries + 1,
        })

    raise TypeError(f"unknown loop event: {event!r}")


# ─── Selection policy ────────────────────────────────────────────────────────


def resolve_target_points(config: OptimizationConfig, catalog: RuleCatalog) -> int:
    if config.target_absolute_points is not None:
        return config.target_absolute_points
    return math.ceil(len(catalog) * DEFAULT_TARGET_RATIO)


def select_for_remediation(
    report: EvaluationReport,
    target_absolute_points: int,
    promotion_buffer: int = 5,
) -> tuple[list[RuleResult], bool]:
    """Pick the results to remediate next.

    Failed and Pending results come first. Only when none remain and the
    point target is still unmet are NotApplicable results promoted, in
    catalog order, enough to close the gap plus the buffer.

    Returns the selection and whether it is a promotion.
    """
    unresolved = report.unresolved
    if unresolved:
        return unresolved, False

    gap = target_absolute_points - report.passed_items
    if gap <= 0:
        return [], False
    candidates = report.with_status(RuleStatus.NOT_APPLICABLE)
    return candidates[: gap + promotion_buffer], True


# ─── Driver ──────────────────────────────────────────────────────────────────


class ConvergenceOrchestrator:
    """Drives content toward a compliance target within a retry budget."""

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        evaluator: Optional[Evaluator] = None,
        remediator: Optional[Remediator] = None,
    ):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.evaluator = evaluator or Evaluator(self.catalog)
        self.remediator = remediator or Remediator(self.catalog)

    def run(
        self,
        content: str,
        config: Optional[OptimizationConfig] = None,
        cancel: Optional[CancelCheck] = None,
    ) -> OptimizationResult:
        validate_content(content)
        config = config or OptimizationConfig()
        target_points = resolve_target_points(config, self.catalog)
        deadline = None
        if config.time_budget_seconds is not None:
            deadline = time.monotonic() + config.time_budget_seconds

        state = LoopState(
            max_retries=config.max_retries,
            target_applicable_score=config.target_applicable_score,
            target_absolute_points=target_points,
        )
        original = content
        iterations: list[IterationRecord] = []
        promoted_ids: list[str] = []

        report = self.evaluator.evaluate(content)
        state = advance(state, Evaluated(report=report))

        while not state.phase.terminal:
            reason = self._cancel_reason(cancel, deadline)
            if reason:
                logger.info("Optimization cancelled after %d retries: %s", state.retries, reason)
                state = advance(state, Cancelled(reason=reason))
                break

            selected, promoted = select_for_remediation(report, target_points, config.promotion_buffer)
            content = self.remediator.remediate(content, selected)
            state = advance(state, Remediated())

            report = self.evaluator.evaluate(content)
            state = advance(state, Evaluated(report=report))

            selected_ids = [r.rule_id for r in selected]
            if promoted:
                promoted_ids.extend(selected_ids)
            iterations.append(IterationRecord(
                retry=state.retries,
                selected_rule_ids=selected_ids,
                promoted=promoted,
                passed_items=report.passed_items,
                applicable_score=report.applicable_score,
            ))
            logger.info(
                "Retry %d/%d: %s %d rule(s); passed %d/%d, applicable %d%% (%s)",
                state.retries, config.max_retries, "promoted" if promoted else "remediated",
                len(selected_ids), report.passed_items, target_points, report.applicable_score,
                state.phase.value,
            )

        if report.unresolved:
            logger.debug("Unresolved after optimization: %s", ", ".join(report.unresolved_rule_ids))

        return OptimizationResult(
            content=content,
            original_content=original,
            report=report,
            retries_used=state.retries,
            evaluations=state.evaluations,
            final_phase=state.phase,
            iterations=iterations,
            promoted_rule_ids=promoted_ids,
        )

    @staticmethod
    def _cancel_reason(cancel: Optional[CancelCheck], deadline: Optional[float]) -> str:
        if cancel is not None and cancel():
            return "cancelled by caller"
        if deadline is not None and time.monotonic() >= deadline:
            return "time budget exhausted"
        return ""


def optimize(
    content: str,
    config: Optional[OptimizationConfig] = None,
    catalog: Optional[RuleCatalog] = None,
    cancel: Optional[CancelCheck] = None,
) -> OptimizationResult:
    """Convenience wrapper for a one-off optimization."""
    return ConvergenceOrchestrator(catalog).run(content, config, cancel)
