"""Tests for the MCP server tools, called directly."""

import pytest

from content_compliance.core.errors import ValidationError
from content_compliance.server import (
    _default_config,
    compliance_catalog,
    compliance_evaluate,
    compliance_history,
    compliance_optimize,
    compliance_rule_trends,
    open_compliance_app,
)


class TestEvaluateTool:
    """Tests for compliance_evaluate."""

    async def test_evaluate(self, history_db, article):
        result = await compliance_evaluate(article)
        report = result["report"]
        assert report["total_items"] == 111
        assert len(result["results"]) == 111
        assert len(result["recommendations"]) == len(report["unresolved_rule_ids"])
        assert result["history_id"] is not None
        assert "Applicable score" in result["summary"]

    async def test_blank_content_rejected(self, history_db):
        with pytest.raises(ValidationError):
            await compliance_evaluate("   ")

    async def test_threshold_range(self, history_db, article):
        with pytest.raises(ValueError):
            await compliance_evaluate(article, threshold=120)

    async def test_history_failure_does_not_fail_tool(self, missing_history_db, article):
        result = await compliance_evaluate(article)
        assert result["history_id"] is None
        assert result["report"]["total_items"] == 111


class TestOptimizeTool:
    """Tests for compliance_optimize."""

    async def test_optimize(self, history_db, article):
        result = await compliance_optimize(article)
        assert result["satisfied"]
        assert result["final_phase"] == "satisfied"
        assert article in result["content"]
        assert result["added_characters"] > 0
        assert result["report"]["applicable_score"] >= 90

    async def test_retry_override(self, history_db, article):
        result = await compliance_optimize(article, max_retries=0)
        assert result["final_phase"] == "exhausted"
        assert result["evaluations"] == 1
        assert result["content"] == article

    async def test_env_defaults(self, history_db, article, monkeypatch):
        monkeypatch.setenv("COMPLIANCE_MAX_RETRIES", "1")
        result = await compliance_optimize(article)
        assert result["retries_used"] == 1
        assert result["final_phase"] == "exhausted"


class TestConfiguration:
    """Tests for environment configuration."""

    def test_defaults(self, monkeypatch):
        for name in ("COMPLIANCE_TARGET_SCORE", "COMPLIANCE_TARGET_POINTS", "COMPLIANCE_MAX_RETRIES",
                     "COMPLIANCE_PROMOTION_BUFFER", "COMPLIANCE_TIME_BUDGET_SECONDS"):
            monkeypatch.delenv(name, raising=False)
        config = _default_config()
        assert config.target_applicable_score == 90
        assert config.target_absolute_points is None
        assert config.max_retries == 5
        assert config.promotion_buffer == 5
        assert config.time_budget_seconds is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("COMPLIANCE_TARGET_SCORE", "95")
        monkeypatch.setenv("COMPLIANCE_TARGET_POINTS", "105")
        monkeypatch.setenv("COMPLIANCE_TIME_BUDGET_SECONDS", "2.5")
        config = _default_config()
        assert config.target_applicable_score == 95
        assert config.target_absolute_points == 105
        assert config.time_budget_seconds == 2.5

    def test_invalid_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("COMPLIANCE_MAX_RETRIES", "many")
        with pytest.raises(ValueError, match="COMPLIANCE_MAX_RETRIES"):
            _default_config()


class TestCatalogTool:
    """Tests for compliance_catalog."""

    async def test_all_rules(self):
        result = await compliance_catalog()
        assert result["count"] == 111
        assert result["categories"]["Voice Search"] == 12

    async def test_category_filter_ignores_case(self):
        result = await compliance_catalog("voice search")
        assert result["count"] == 12
        assert {r["category"] for r in result["rules"]} == {"Voice Search"}

    async def test_unknown_category(self):
        with pytest.raises(ValueError, match="Unknown category"):
            await compliance_catalog("Podcasts")


class TestStatefulTools:
    """Tests for the history-backed tools."""

    async def test_history(self, history_db, article):
        await compliance_evaluate(article)
        await compliance_optimize(article)

        result = await compliance_history()
        assert result["count"] == 2
        assert (await compliance_history(kind="optimization"))["count"] == 1

    async def test_history_invalid_kind(self, history_db):
        with pytest.raises(ValueError):
            await compliance_history(kind="drafts")

    async def test_history_empty(self, history_db):
        result = await compliance_history()
        assert result["count"] == 0
        assert result["summary"] == "No reports recorded yet."

    async def test_rule_trends(self, history_db):
        await compliance_evaluate("Just one line.")
        result = await compliance_rule_trends(days=7, limit=3)
        assert result["reports"] == 1
        assert len(result["rules"]) == 3
        assert "most often unresolved" in result["summary"]

    async def test_open_app(self, history_db):
        result = await open_compliance_app()
        assert result["catalog"]["total_rules"] == 111
        assert result["recent_reports"] == []
