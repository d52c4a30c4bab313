"""Tests for the Remediator and its fragment generators."""

import json

import pytest

from content_compliance.core.catalog import default_catalog
from content_compliance.core.errors import RemediationError
from content_compliance.core.evaluator import evaluate
from content_compliance.core.models import Category, RuleResult, RuleStatus
from content_compliance.core.remediation import (
    GENERATORS,
    Placement,
    RemediationAction,
    Remediator,
    document_title,
)

SAMPLES = ["x", "# Hi?", "Plain words with no structure at all.", '<img src="cat.png"> A cat']


def passed_ids(content):
    return {r.rule_id for r in evaluate(content).with_status(RuleStatus.PASSED)}


def fragment_for(rule_id, content):
    return Remediator().action_for(default_catalog().get(rule_id), content).fragment


class TestRemediationAction:
    """Tests for a single additive edit."""

    def test_append(self):
        action = RemediationAction(rule_id="a", category=Category.META_TAGS, marker="[A]", fragment="[A]")
        assert action.apply("text") == "text\n\n[A]"

    def test_prepend(self):
        action = RemediationAction(
            rule_id="a", category=Category.META_TAGS, marker="[A]", fragment="[A]", placement=Placement.PREPEND,
        )
        assert action.apply("text") == "[A]\n\ntext"

    def test_noop_when_marker_present(self):
        action = RemediationAction(rule_id="a", category=Category.META_TAGS, marker="[A]", fragment="[A] more")
        assert action.apply("already [A] here") == "already [A] here"

    def test_fragment_must_contain_marker(self):
        with pytest.raises(ValueError):
            RemediationAction(rule_id="a", category=Category.META_TAGS, marker="[A]", fragment="nothing")


class TestRemediator:
    """Tests for Remediator.remediate."""

    def test_unresolved_rules_pass_afterwards(self, article):
        report = evaluate(article)
        assert report.unresolved
        remediated = Remediator().remediate(article, report.unresolved)
        after = evaluate(remediated)
        for result in report.unresolved:
            assert after.result_for(result.rule_id).status == RuleStatus.PASSED

    def test_blank_content_unchanged(self):
        report = evaluate("")
        assert Remediator().remediate("", report.unresolved) == ""
        assert Remediator().remediate("  \n", report.unresolved) == "  \n"

    @pytest.mark.parametrize("content", SAMPLES)
    def test_never_removes_text(self, content):
        remediated = Remediator().remediate(content, evaluate(content).unresolved)
        assert content in remediated
        assert len(remediated) > len(content)

    @pytest.mark.parametrize("content", SAMPLES)
    def test_idempotent(self, content):
        remediator = Remediator()
        for selected in (evaluate(content).unresolved, evaluate(content).with_status(RuleStatus.NOT_APPLICABLE)):
            once = remediator.remediate(content, selected)
            assert remediator.remediate(once, selected) == once

    @pytest.mark.parametrize("content", SAMPLES)
    def test_monotone(self, content):
        report = evaluate(content)
        remediated = Remediator().remediate(content, report.unresolved)
        assert passed_ids(content) <= passed_ids(remediated)
        assert evaluate(remediated).earned_points >= report.earned_points

    def test_short_content_keeps_snippet_rule(self):
        content = "# Hi?"
        assert evaluate(content).result_for("vs-3").status == RuleStatus.PASSED
        remediated = Remediator().remediate(content, evaluate(content).unresolved)
        assert len(remediated) >= 160
        assert evaluate(remediated).result_for("vs-3").status == RuleStatus.PASSED

    def test_not_applicable_rules_are_promoted(self):
        content = "x"
        not_applicable = evaluate(content).with_status(RuleStatus.NOT_APPLICABLE)[:3]
        after = evaluate(Remediator().remediate(content, not_applicable))
        for result in not_applicable:
            assert after.result_for(result.rule_id).status == RuleStatus.PASSED

    def test_plan_is_grouped_by_category(self, catalog):
        order = {category: index for index, category in enumerate(catalog.categories)}
        actions = Remediator().plan("x", evaluate("x").unresolved)
        indexes = [order[a.category] for a in actions]
        assert indexes == sorted(indexes)

    def test_plan_skips_present_markers(self, catalog):
        content = "x\n" + catalog.get("meta-3").marker
        selected = [RuleResult(rule_id="meta-3", category=Category.META_TAGS, item="Author", status=RuleStatus.PENDING, points=1)]
        assert Remediator().plan(content, selected) == []

    def test_unknown_rule_rejected(self):
        selected = [RuleResult(rule_id="nope-1", category=Category.META_TAGS, item="?", status=RuleStatus.PENDING, points=1)]
        with pytest.raises(KeyError):
            Remediator().remediate("x", selected)

    def test_generator_error_is_wrapped(self, monkeypatch):
        def boom(content, rule):
            raise RuntimeError("generator broke")

        monkeypatch.setitem(GENERATORS, "cs-12", boom)
        with pytest.raises(RemediationError) as excinfo:
            Remediator().remediate("x", evaluate("x").unresolved)
        assert excinfo.value.rule_id == "cs-12"


class TestGenerators:
    """Tests for the section generators."""

    def test_title_strips_heading_marks(self):
        assert document_title("\n\n## My Post\nbody") == "My Post"
        assert document_title("") == "Untitled"
        assert len(document_title("a" * 100)) == 60

    def test_meta_preview_escapes_description(self):
        fragment = fragment_for("meta-2", '# Tips & "tricks"')
        assert fragment.startswith("## 🏷️ SEO Meta Tags Preview")
        assert "&amp;" in fragment
        assert "&quot;tricks&quot;" in fragment
        assert 'meta name="description"' in fragment

    def test_faq_uses_document_questions(self):
        fragment = fragment_for("schema-2", "# Guide\nWhat is SEO?\nWhy bother?")
        assert "**Q1: What is SEO?**" in fragment
        assert "**Q2: Why bother?**" in fragment

    def test_faq_fallback_question(self):
        assert "**Q1: What is Guide?**" in fragment_for("schema-2", "# Guide")

    def test_guide_from_headings(self, article):
        fragment = fragment_for("schema-3", article)
        assert "**Step 3:**" in fragment
        assert "Why structure matters" in fragment

    def test_guide_fallback_steps(self):
        fragment = fragment_for("schema-3", "plain")
        assert "**Step 5:** Test and validate optimization results" in fragment

    @pytest.mark.parametrize("rule_id,schema_type", [
        ("schema-4", "Review"), ("schema-5", "Product"), ("schema-6", "VideoObject"), ("schema-7", "Thing"),
    ])
    def test_json_ld_blocks(self, rule_id, schema_type):
        fragment = fragment_for(rule_id, "# Widget")
        body = fragment.split("\n")[1]
        payload = json.loads(body)
        assert payload["@type"] == schema_type
        assert payload["name"] == "Widget"
        assert fragment.startswith('<script type="application/ld+json">')

    def test_table_of_contents_is_prepended(self, article):
        remediated = Remediator().remediate(article, evaluate(article).unresolved)
        assert remediated.startswith("## 📋 Table of Contents")
        assert "  2. [Why structure matters](#why-structure-matters)" in remediated

    def test_content_summary(self):
        fragment = fragment_for("cs-12", "one two three")
        assert "**Word Count**: ~3 words" in fragment
        assert "**Reading Time**: ~1 minutes" in fragment

    def test_open_graph_tags(self):
        fragment = fragment_for("og-1", "# Widget")
        assert default_catalog().get("og-1").signal(fragment)
