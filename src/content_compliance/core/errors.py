"""Exceptions raised by the compliance engine.

An unmet score is never an exception: it is reported as data
(NeedsImprovement, Exhausted). Only bad input and faults inside rule
predicates or remediation generators raise.
"""

from __future__ import annotations


class ComplianceError(Exception):
    """Base class for engine errors."""


class ValidationError(ComplianceError, ValueError):
    """Content is not a string, or is blank where content is required."""


class RuleEvaluationError(ComplianceError):
    """A rule predicate raised while evaluating content."""

    def __init__(self, rule_id: str, cause: BaseException):
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"rule {rule_id} failed to evaluate: {cause!r}")


class RemediationError(ComplianceError):
    """A remediation generator raised while building a fragment."""

    def __init__(self, rule_id: str, cause: BaseException):
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"remediation for rule {rule_id} failed: {cause!r}")
