"""Pydantic data models — the shared business objects.

The MCP server, the history store and the engine itself all exchange
these models. They hold data only; the behaviour lives in the evaluator,
remediator and orchestrator modules.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RuleStatus(str, Enum):
    """Outcome of one rule against one piece of content."""

    PASSED = "passed"
    FAILED = "failed"
    PENDING = "pending"
    NOT_APPLICABLE = "not_applicable"


class Category(str, Enum):
    """Rule categories, in catalog order."""

    META_TAGS = "Meta Tags"
    OPEN_GRAPH = "Open Graph"
    STRUCTURED_DATA = "Structured Data"
    AI_ASSISTANT = "AI Assistant"
    CORE_WEB_VITALS = "Core Web Vitals"
    CONTENT_STRUCTURE = "Content Structure"
    VOICE_SEARCH = "Voice Search"
    TECHNICAL_SEO = "Technical SEO"


class ComplianceLevel(str, Enum):
    EXCELLENT = "excellent"
    NEEDS_IMPROVEMENT = "needs_improvement"


class RuleResult(BaseModel):
    """One rule's status for one evaluation."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    category: Category
    item: str = Field(description="Short human-readable rule name")
    status: RuleStatus
    points: int = Field(ge=0, description="Rule weight")

    @property
    def unresolved(self) -> bool:
        return self.status in (RuleStatus.FAILED, RuleStatus.PENDING)


class CategoryScore(BaseModel):
    """Per-category slice of an evaluation."""

    category: Category
    total_items: int
    passed_items: int
    earned_points: int
    max_points: int
    applicable_max_points: int
    percentage: int = Field(ge=0, le=100, description="Applicable-only score for this category")


class Recommendation(BaseModel):
    """What to add to resolve an unresolved rule."""

    rule_id: str
    category: Category
    item: str
    status: RuleStatus
    action: str


class EvaluationReport(BaseModel):
    """Complete result of evaluating content against the catalog."""

    model_config = ConfigDict(frozen=True)

    results: tuple[RuleResult, ...]
    total_items: int
    passed_items: int
    failed_items: int
    pending_items: int
    not_applicable_items: int
    earned_points: int
    max_points: int
    applicable_max_points: int
    raw_score: int = Field(ge=0, le=100)
    applicable_score: int = Field(ge=0, le=100)
    required_threshold: float = Field(ge=0, le=100)
    compliance_level: ComplianceLevel
    categories: tuple[CategoryScore, ...] = ()

    @model_validator(mode="after")
    def _check_counts(self) -> "EvaluationReport":
        counted = self.passed_items + self.failed_items + self.pending_items + self.not_applicable_items
        if counted != self.total_items:
            raise ValueError(f"status counts ({counted}) do not add up to total_items ({self.total_items})")
        return self

    def with_status(self, *statuses: RuleStatus) -> list[RuleResult]:
        return [r for r in self.results if r.status in statuses]

    @property
    def unresolved(self) -> list[RuleResult]:
        """Failed and Pending results, in catalog order."""
        return [r for r in self.results if r.unresolved]

    @property
    def unresolved_rule_ids(self) -> list[str]:
        return [r.rule_id for r in self.unresolved]

    def result_for(self, rule_id: str) -> Optional[RuleResult]:
        return next((r for r in self.results if r.rule_id == rule_id), None)


class OptimizationConfig(BaseModel):
    """Targets and budgets for one optimization request."""

    target_applicable_score: float = Field(90, ge=0, le=100)
    target_absolute_points: Optional[int] = Field(
        None, ge=0, description="Defaults to 90% of the catalog size"
    )
    max_retries: int = Field(5, ge=0)
    promotion_buffer: int = Field(5, ge=0, description="Extra NotApplicable rules promoted beyond the point gap")
    time_budget_seconds: Optional[float] = Field(None, gt=0)


class LoopPhase(str, Enum):
    """States of the evaluate/remediate loop."""

    EVALUATING = "evaluating"
    REMEDIATING = "remediating"
    SATISFIED = "satisfied"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (LoopPhase.SATISFIED, LoopPhase.EXHAUSTED, LoopPhase.CANCELLED)


class Evaluated(BaseModel):
    kind: Literal["evaluated"] = "evaluated"
    report: EvaluationReport


class Remediated(BaseModel):
    kind: Literal["remediated"] = "remediated"


class Cancelled(BaseModel):
    kind: Literal["cancelled"] = "cancelled"
    reason: str = ""


LoopEvent = Union[Evaluated, Remediated, Cancelled]


class LoopState(BaseModel):
    """Snapshot of the loop between two transitions."""

    model_config = ConfigDict(frozen=True)

    phase: LoopPhase = LoopPhase.EVALUATING
    retries: int = 0
    evaluations: int = 0
    max_retries: int = 5
    target_applicable_score: float = 90
    target_absolute_points: int = 0
    report: Optional[EvaluationReport] = None


class IterationRecord(BaseModel):
    """What one remediation iteration selected and what it achieved."""

    retry: int
    selected_rule_ids: list[str]
    promoted: bool = False
    passed_items: int
    applicable_score: int


class OptimizationResult(BaseModel):
    """Final content and report of one optimization request."""

    content: str
    original_content: str
    report: EvaluationReport
    retries_used: int
    evaluations: int
    final_phase: LoopPhase
    iterations: list[IterationRecord] = Field(default_factory=list)
    promoted_rule_ids: list[str] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def satisfied(self) -> bool:
        return self.final_phase == LoopPhase.SATISFIED
