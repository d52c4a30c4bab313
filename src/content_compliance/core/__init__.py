"""Core engine — rule catalog, evaluation, scoring, remediation and the convergence loop.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
the history database or any server framework, and does no I/O.
"""

from .catalog import Rule, RuleCatalog, build_catalog, default_catalog
from .errors import ComplianceError, RemediationError, RuleEvaluationError, ValidationError
from .evaluator import Evaluator, evaluate
from .models import (
    Category,
    ComplianceLevel,
    EvaluationReport,
    LoopPhase,
    OptimizationConfig,
    OptimizationResult,
    RuleResult,
    RuleStatus,
)
from .orchestrator import ConvergenceOrchestrator, advance, optimize, select_for_remediation
from .remediation import RemediationAction, Remediator

__all__ = [
    "Category",
    "ComplianceError",
    "ComplianceLevel",
    "ConvergenceOrchestrator",
    "EvaluationReport",
    "Evaluator",
    "LoopPhase",
    "OptimizationConfig",
    "OptimizationResult",
    "RemediationAction",
    "RemediationError",
    "Remediator",
    "Rule",
    "RuleCatalog",
    "RuleEvaluationError",
    "RuleResult",
    "RuleStatus",
    "ValidationError",
    "advance",
    "build_catalog",
    "default_catalog",
    "evaluate",
    "optimize",
    "select_for_remediation",
]
