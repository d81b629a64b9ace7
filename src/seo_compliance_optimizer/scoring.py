"""
Compliance scoring.

The score is a pure function of the issue multiset: every critical issue
costs 20 points, every major or minor issue costs 5, floored at zero.
"""

from typing import Any, Iterable, Optional

from .models import Issue, Severity, ValidationResult


CRITICAL_PENALTY = 20
WARNING_PENALTY = 5


def calculate_score(errors: int, warnings: int) -> float:
    """
    Score a run from its error and warning counts.

    Args:
        errors: Number of critical issues.
        warnings: Number of major and minor issues.

    Returns:
        Score in [0, 100].
    """
    return float(max(0, 100 - CRITICAL_PENALTY * errors - WARNING_PENALTY * warnings))


def score_issues(issues: Iterable[Issue]) -> float:
    """Score an issue multiset directly."""
    errors = 0
    warnings = 0
    for issue in issues:
        if issue.severity == Severity.CRITICAL:
            errors += 1
        else:
            warnings += 1
    return calculate_score(errors, warnings)


def build_validation_result(
    issues: Iterable[Issue],
    metrics: Optional[dict[str, Any]] = None,
) -> ValidationResult:
    """
    Split issues into errors and warnings and attach the score.

    Args:
        issues: Issues from one detection pass.
        metrics: Measured values to carry along for reporting.

    Returns:
        A scored ValidationResult.
    """
    issues = list(issues)
    errors = [i for i in issues if i.severity == Severity.CRITICAL]
    warnings = [i for i in issues if i.severity != Severity.CRITICAL]
    return ValidationResult(
        errors=errors,
        warnings=warnings,
        overall_score=calculate_score(len(errors), len(warnings)),
        metrics=dict(metrics or {}),
    )
