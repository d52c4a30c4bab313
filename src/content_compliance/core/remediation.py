"""Additive remediation of unresolved rules.

Each unresolved rule gets a RemediationAction whose fragment contains the
rule's marker. Applying an action when its marker is already present is a
no-op, and actions only ever append or prepend, so remediation is
idempotent and never un-passes a rule.

Most rules are resolved by their bare marker line. The rules that stand
for whole document sections (meta preview, FAQ, how-to guide, key
insights, table of contents, summary, JSON-LD blocks) have generators that
build the section from the document's own text.
"""

from __future__ import annotations

import html
import json
import logging
import math
import re
from enum import Enum
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .catalog import Rule, RuleCatalog, default_catalog
from .errors import RemediationError, RuleEvaluationError
from .models import Category, RuleResult

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
TITLE_LENGTH = 60
DESCRIPTION_LENGTH = 120

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")


class Placement(str, Enum):
    APPEND = "append"
    PREPEND = "prepend"


class RemediationAction(BaseModel):
    """A pure, additive edit that resolves one rule."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    category: Category
    marker: str
    fragment: str
    placement: Placement = Placement.APPEND

    @model_validator(mode="after")
    def _fragment_carries_marker(self) -> "RemediationAction":
        if self.marker not in self.fragment:
            raise ValueError(f"fragment for {self.rule_id} does not contain its marker {self.marker!r}")
        return self

    def apply(self, content: str) -> str:
        if self.marker in content:
            return content
        if self.placement == Placement.PREPEND:
            return f"{self.fragment}\n\n{content}"
        return f"{content}\n\n{self.fragment}"


Generator = Callable[[str, Rule], str]

GENERATORS: dict[str, Generator] = {}
PLACEMENTS: dict[str, Placement] = {}


def generator(*rule_ids: str, placement: Placement = Placement.APPEND):
    """Register a fragment generator for one or more rule ids."""

    def register(fn: Generator) -> Generator:
        for rule_id in rule_ids:
            GENERATORS[rule_id] = fn
            PLACEMENTS[rule_id] = placement
        return fn

    return register


def marker_line(content: str, rule: Rule) -> str:
    return rule.marker


# ─── Text helpers ────────────────────────────────────────────────────────────


def document_title(content: str) -> str:
    for line in content.splitlines():
        title = line.strip().lstrip("#").strip()
        if title:
            return title[:TITLE_LENGTH]
    return "Untitled"


def document_description(content: str) -> str:
    return " ".join(content[:DESCRIPTION_LENGTH].split())


def document_headings(content: str) -> list[tuple[int, str]]:
    headings = []
    for line in content.splitlines():
        match = HEADING_RE.match(line)
        if match and match.group(2).strip():
            headings.append((len(match.group(1)), match.group(2).strip()))
    return headings


def document_questions(content: str) -> list[str]:
    return [line.strip().lstrip("#").strip() for line in content.splitlines() if "?" in line]


def slugify(title: str) -> str:
    return re.sub(r"\s+", "-", title.strip().lower())


# ─── Section generators ──────────────────────────────────────────────────────


@generator("meta-2")
def meta_preview(content: str, rule: Rule) -> str:
    title = document_title(content)
    description = document_description(content)
    return (
        f"## {rule.marker}\n\n"
        f"**Title Tag**: {title}\n"
        f"**Meta Description**: {description}...\n"
        f'<meta name="description" content="{html.escape(description)}">'
    )


@generator("meta-4")
def language_tag(content: str, rule: Rule) -> str:
    return '<meta name="language" content="en">'


@generator("meta-5")
def viewport_tag(content: str, rule: Rule) -> str:
    return '<meta name="viewport" content="width=device-width, initial-scale=1">'


@generator("meta-6")
def charset_tag(content: str, rule: Rule) -> str:
    return '<meta charset="utf-8">'


@generator("og-1")
def open_graph_tags(content: str, rule: Rule) -> str:
    title = html.escape(document_title(content))
    description = html.escape(document_description(content))
    return (
        f"<!-- {rule.marker} -->\n"
        f'<meta property="og:title" content="{title}">\n'
        f'<meta property="og:description" content="{description}">\n'
        '<meta property="og:image" content="/og-image.png">'
    )


@generator("og-2")
def twitter_card_tag(content: str, rule: Rule) -> str:
    return f'<!-- {rule.marker} -->\n<meta name="twitter:card" content="summary_large_image">'


@generator("schema-2")
def faq_section(content: str, rule: Rule) -> str:
    questions = document_questions(content) or [f"What is {document_title(content)}?"]
    lines = [f"## {rule.marker}", ""]
    for index, question in enumerate(questions, start=1):
        lines.append(f"**Q{index}: {question}**")
        lines.append("")
        lines.append(f"A{index}: The sections above answer this in detail.")
        lines.append("")
    return "\n".join(lines).rstrip()


DEFAULT_STEPS = [
    "Analyze your content for optimization opportunities",
    "Apply meta tags and structured data markup",
    "Optimize for voice search and conversational queries",
    "Implement Schema.org markup for better machine understanding",
    "Test and validate optimization results",
]


@generator("schema-3")
def step_by_step_guide(content: str, rule: Rule) -> str:
    headings = document_headings(content)
    if len(headings) >= 2:
        steps = [f"Work through \"{title}\"" for _, title in headings]
    else:
        steps = DEFAULT_STEPS
    lines = [f"## {rule.marker}", ""]
    for index, step in enumerate(steps, start=1):
        lines.append(f"**Step {index}:** {step}")
        lines.append("")
    return "\n".join(lines).rstrip()


SCHEMA_TYPES = {
    "schema-4": "Review",
    "schema-5": "Product",
    "schema-6": "VideoObject",
    "schema-7": "Thing",
}


@generator(*SCHEMA_TYPES)
def json_ld_block(content: str, rule: Rule) -> str:
    payload = {
        "@context": "https://schema.org",
        "@type": SCHEMA_TYPES[rule.rule_id],
        "name": document_title(content),
    }
    return f'<script type="application/ld+json">\n{json.dumps(payload, ensure_ascii=False)}\n</script>'


KEY_INSIGHTS = [
    "**Semantic Understanding**: Content optimized for natural language processing",
    "**Entity Recognition**: Clear entity relationships and context markers",
    "**Conversational Flow**: Natural dialogue patterns for assistant interactions",
    "**Structured Data**: Schema.org markup for machine comprehension",
]


@generator("ai-12")
def key_insights(content: str, rule: Rule) -> str:
    return f"## {rule.marker}\n\n" + "\n".join(f"• {insight}" for insight in KEY_INSIGHTS)


@generator("cs-2", placement=Placement.PREPEND)
def table_of_contents(content: str, rule: Rule) -> str:
    headings = document_headings(content) or [(1, document_title(content))]
    lines = [f"## {rule.marker}", ""]
    for index, (level, title) in enumerate(headings, start=1):
        indent = "  " * (level - 1)
        lines.append(f"{indent}{index}. [{title}](#{slugify(title)})")
    lines.append("")
    lines.append("---")
    return "\n".join(lines)


@generator("cs-12")
def content_summary(content: str, rule: Rule) -> str:
    sections = len([s for s in content.split("\n\n") if s.strip()])
    words = len(content.split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return (
        f"## {rule.marker}\n\n"
        f"**Total Sections**: {sections}\n"
        f"**Word Count**: ~{words} words\n"
        f"**Reading Time**: ~{minutes} minutes"
    )


# ─── Remediator ──────────────────────────────────────────────────────────────


class Remediator:
    """Turns unresolved rule results into additive edits of the content."""

    def __init__(self, catalog: Optional[RuleCatalog] = None):
        self.catalog = catalog if catalog is not None else default_catalog()

    def action_for(self, rule: Rule, content: str) -> RemediationAction:
        build = GENERATORS.get(rule.rule_id, marker_line)
        try:
            fragment = build(content, rule)
        except Exception as exc:
            raise RemediationError(rule.rule_id, exc) from exc
        return RemediationAction(
            rule_id=rule.rule_id,
            category=rule.category,
            marker=rule.marker,
            fragment=fragment,
            placement=PLACEMENTS.get(rule.rule_id, Placement.APPEND),
        )

    def plan(self, content: str, unresolved: Iterable[RuleResult]) -> list[RemediationAction]:
        """Actions for rules whose marker is absent, grouped by category in catalog order."""
        wanted = {result.rule_id for result in unresolved}
        unknown = wanted.difference(rule.rule_id for rule in self.catalog)
        if unknown:
            raise KeyError(f"unknown rule ids: {sorted(unknown)}")

        actions = []
        for category in self.catalog.categories:
            for rule in self.catalog.in_category(category):
                if rule.rule_id in wanted and rule.marker not in content:
                    actions.append(self.action_for(rule, content))
        return actions

    def remediate(self, content: str, unresolved: Iterable[RuleResult]) -> str:
        unresolved = list(unresolved)
        if not content.strip():
            logger.warning("Content is blank; nothing to anchor %d remediation(s) to", len(unresolved))
            return content

        actions = self.plan(content, unresolved)
        updated = content
        for action in actions:
            updated = action.apply(updated)

        updated = self._preserve(content, updated)
        logger.info("Applied %d remediation(s) across %d categories", len(actions), len({a.category for a in actions}))
        return updated

    def _preserve(self, before: str, after: str) -> str:
        """Re-add markers for rules that passed before the edit but not after it."""
        if before == after:
            return after
        restored = after
        for rule in self.catalog:
            try:
                regressed = rule.passes(before) and not rule.passes(restored)
            except Exception as exc:
                raise RuleEvaluationError(rule.rule_id, exc) from exc
            if regressed:
                logger.debug("Rule %s regressed after remediation; adding its marker", rule.rule_id)
                restored = f"{restored}\n\n{rule.marker}"
        return restored
