"""Tests for the convergence loop: reducer, selection policy and driver."""

import pytest

from content_compliance.core.errors import RemediationError
from content_compliance.core.evaluator import evaluate
from content_compliance.core.models import (
    Cancelled,
    ComplianceLevel,
    Evaluated,
    LoopPhase,
    LoopState,
    OptimizationConfig,
    Remediated,
    RuleStatus,
)
from content_compliance.core.orchestrator import (
    ConvergenceOrchestrator,
    advance,
    is_satisfied,
    optimize,
    resolve_target_points,
    select_for_remediation,
)
from content_compliance.core.remediation import Remediator

from conftest import marker_content


def state(**overrides):
    defaults = {"max_retries": 5, "target_applicable_score": 90, "target_absolute_points": 100}
    defaults.update(overrides)
    return LoopState(**defaults)


class TestReducer:
    """Tests for advance(state, event)."""

    def test_satisfied(self, all_markers):
        nxt = advance(state(), Evaluated(report=evaluate(all_markers)))
        assert nxt.phase == LoopPhase.SATISFIED
        assert nxt.evaluations == 1

    def test_unsatisfied_goes_to_remediation(self):
        nxt = advance(state(), Evaluated(report=evaluate("")))
        assert nxt.phase == LoopPhase.REMEDIATING
        assert nxt.retries == 0

    def test_exhausted_when_retries_used_up(self):
        nxt = advance(state(retries=5), Evaluated(report=evaluate("")))
        assert nxt.phase == LoopPhase.EXHAUSTED

    def test_zero_retry_budget(self):
        nxt = advance(state(max_retries=0), Evaluated(report=evaluate("")))
        assert nxt.phase == LoopPhase.EXHAUSTED

    def test_remediated_counts_a_retry(self):
        nxt = advance(state(phase=LoopPhase.REMEDIATING), Remediated())
        assert nxt.phase == LoopPhase.EVALUATING
        assert nxt.retries == 1

    def test_cancelled(self):
        nxt = advance(state(phase=LoopPhase.REMEDIATING), Cancelled(reason="stop"))
        assert nxt.phase == LoopPhase.CANCELLED

    @pytest.mark.parametrize("phase", [LoopPhase.SATISFIED, LoopPhase.EXHAUSTED, LoopPhase.CANCELLED])
    def test_terminal_states_reject_events(self, phase):
        with pytest.raises(ValueError):
            advance(state(phase=phase), Remediated())

    def test_out_of_order_events_rejected(self):
        with pytest.raises(ValueError):
            advance(state(), Remediated())
        with pytest.raises(ValueError):
            advance(state(phase=LoopPhase.REMEDIATING), Evaluated(report=evaluate("")))

    def test_reducer_does_not_mutate(self):
        before = state()
        advance(before, Evaluated(report=evaluate("")))
        assert before.phase == LoopPhase.EVALUATING
        assert before.evaluations == 0

    def test_satisfaction_needs_both_targets(self, all_markers):
        report = evaluate(all_markers)
        assert is_satisfied(report, 90, 111)
        assert not is_satisfied(report, 90, 112)
        assert not is_satisfied(evaluate(""), 0, 100)


class TestSelection:
    """Tests for the selection policy."""

    def test_unresolved_first(self):
        report = evaluate("x")
        selected, promoted = select_for_remediation(report, 100)
        assert not promoted
        assert selected == report.unresolved

    def test_promotion_closes_gap_plus_buffer(self, catalog):
        content = marker_content(catalog, only=[r.rule_id for r in catalog if not r.conditional])
        report = evaluate(content)
        assert report.unresolved == []
        selected, promoted = select_for_remediation(report, 100, promotion_buffer=5)
        assert promoted
        assert len(selected) == 100 - report.passed_items + 5
        assert all(r.status == RuleStatus.NOT_APPLICABLE for r in selected)
        assert selected == report.with_status(RuleStatus.NOT_APPLICABLE)[: len(selected)]

    def test_nothing_to_select_when_targets_met(self, all_markers):
        assert select_for_remediation(evaluate(all_markers), 100) == ([], False)

    def test_default_point_target(self, catalog):
        assert resolve_target_points(OptimizationConfig(), catalog) == 100
        assert resolve_target_points(OptimizationConfig(target_absolute_points=42), catalog) == 42


class TestScenarios:
    """End-to-end optimization scenarios."""

    def test_empty_content_exhausts_budget(self):
        result = optimize("")
        assert result.final_phase == LoopPhase.EXHAUSTED
        assert result.evaluations == 6
        assert result.retries_used == 5
        assert result.report.compliance_level == ComplianceLevel.NEEDS_IMPROVEMENT
        assert result.content == ""
        assert set(result.report.unresolved_rule_ids) >= {"meta-1", "vs-2"}

    def test_fully_marked_content_needs_no_work(self, all_markers):
        result = optimize(all_markers)
        assert result.final_phase == LoopPhase.SATISFIED
        assert result.retries_used == 0
        assert result.evaluations == 1
        assert result.iterations == []
        assert result.content == all_markers
        assert result.report.applicable_score == 100

    def test_three_missing_markers_fixed_in_one_pass(self, catalog):
        missing = ["schema-4", "schema-5", "schema-6"]
        content = marker_content(catalog, exclude=missing)
        first = evaluate(content)
        assert first.passed_items == 108
        assert first.unresolved_rule_ids == missing

        config = OptimizationConfig(target_applicable_score=100, target_absolute_points=111)
        result = optimize(content, config)
        assert result.final_phase == LoopPhase.SATISFIED
        assert result.retries_used == 1
        assert result.evaluations == 2
        assert result.iterations[0].selected_rule_ids == missing
        assert result.report.passed_items == 111

    def test_point_gap_closed_by_promotion(self, catalog):
        content = marker_content(catalog, only=[r.rule_id for r in catalog if not r.conditional])
        first = evaluate(content)
        assert first.failed_items + first.pending_items == 0
        assert first.passed_items < 100

        result = optimize(content)
        assert result.final_phase == LoopPhase.SATISFIED
        assert result.retries_used == 1
        assert result.iterations[0].promoted
        assert len(result.promoted_rule_ids) == 100 - first.passed_items + 5
        for rule_id in result.promoted_rule_ids:
            assert first.result_for(rule_id).status == RuleStatus.NOT_APPLICABLE
            assert result.report.result_for(rule_id).status == RuleStatus.PASSED
        assert result.report.passed_items >= 100

    def test_article_converges(self, article):
        result = optimize(article)
        assert result.satisfied
        assert result.retries_used == 2
        assert not result.iterations[0].promoted
        assert result.iterations[1].promoted
        assert result.original_content == article
        assert article in result.content


class TestDriver:
    """Tests for ConvergenceOrchestrator.run."""

    @pytest.mark.parametrize("content", ["", "x", "# Hi?"])
    @pytest.mark.parametrize("max_retries", [0, 1, 3])
    def test_terminates_within_budget(self, content, max_retries):
        result = optimize(content, OptimizationConfig(max_retries=max_retries))
        assert result.evaluations <= max_retries + 1
        assert result.final_phase.terminal

    def test_points_never_decrease(self, article):
        result = optimize(article)
        points = [evaluate(article).passed_items] + [i.passed_items for i in result.iterations]
        assert points == sorted(points)

    def test_cancel_before_first_remediation(self):
        result = optimize("x", cancel=lambda: True)
        assert result.final_phase == LoopPhase.CANCELLED
        assert result.retries_used == 0
        assert result.evaluations == 1
        assert result.content == "x"

    def test_cancel_after_one_iteration(self):
        calls = []

        def cancel():
            calls.append(1)
            return len(calls) > 1

        result = optimize("x", cancel=cancel)
        assert result.final_phase == LoopPhase.CANCELLED
        assert result.retries_used == 1
        assert result.evaluations == 2
        assert result.report == evaluate(result.content)

    def test_time_budget(self):
        result = optimize("x", OptimizationConfig(time_budget_seconds=1e-9))
        assert result.final_phase == LoopPhase.CANCELLED
        assert result.evaluations == 1

    def test_remediation_errors_propagate(self):
        class BrokenRemediator(Remediator):
            def remediate(self, content, unresolved):
                raise RemediationError("meta-3", RuntimeError("broken"))

        orchestrator = ConvergenceOrchestrator(remediator=BrokenRemediator())
        with pytest.raises(RemediationError):
            orchestrator.run("x")

    def test_non_string_content_rejected(self):
        with pytest.raises(ValueError):
            optimize(123)
