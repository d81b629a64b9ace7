"""
Data models for the SEO compliance optimizer.

This module defines the core records passed between the detector, the
correctors and the loop manager.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Severity(Enum):
    """Issue severity tiers."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class IssueType(Enum):
    """Kinds of compliance defects the detector reports."""
    META_DESCRIPTION_MISSING = "meta_description_missing"
    META_DESCRIPTION_LENGTH = "meta_description_length"
    META_DESCRIPTION_KEYWORD = "meta_description_keyword"
    TITLE_MISSING = "title_missing"
    TITLE_LENGTH = "title_length"
    TITLE_KEYWORD = "title_keyword"
    CONTENT_MISSING = "content_missing"
    KEYWORD_DENSITY = "keyword_density"
    SUBHEADING_KEYWORD_USAGE = "subheading_keyword_usage"
    PASSIVE_VOICE = "passive_voice"
    LONG_SENTENCES = "long_sentences"
    TRANSITION_WORDS = "transition_words"
    IMAGE_MISSING = "image_missing"
    ALT_TEXT = "alt_text"

    @property
    def category(self) -> str:
        """Corrector family responsible for this issue type."""
        return ISSUE_CATEGORIES[self]


ISSUE_CATEGORIES: dict[IssueType, str] = {
    IssueType.META_DESCRIPTION_MISSING: "meta_description",
    IssueType.META_DESCRIPTION_LENGTH: "meta_description",
    IssueType.META_DESCRIPTION_KEYWORD: "meta_description",
    IssueType.TITLE_MISSING: "title",
    IssueType.TITLE_LENGTH: "title",
    IssueType.TITLE_KEYWORD: "title",
    IssueType.CONTENT_MISSING: "content",
    IssueType.KEYWORD_DENSITY: "keyword_density",
    IssueType.SUBHEADING_KEYWORD_USAGE: "keyword_density",
    IssueType.PASSIVE_VOICE: "readability",
    IssueType.LONG_SENTENCES: "readability",
    IssueType.TRANSITION_WORDS: "readability",
    IssueType.IMAGE_MISSING: "images",
    IssueType.ALT_TEXT: "images",
}


class TerminationReason(Enum):
    """Why an optimization run stopped."""
    COMPLIANCE_ACHIEVED = "compliance_achieved"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STAGNATION_DETECTED = "stagnation_detected"
    INSUFFICIENT_IMPROVEMENT = "insufficient_improvement"
    INITIAL_COMPLIANCE = "initial_compliance"
    CRITICAL_ERROR = "critical_error"


@dataclass
class ContentRecord:
    """A candidate article: the unit the optimizer reads and corrects."""
    title: str = ""
    body: str = ""
    excerpt: str = ""
    meta_description: str = ""
    content_type: str = "post"

    def __post_init__(self) -> None:
        """Coerce missing fields to empty strings."""
        self.title = self.title or ""
        self.body = self.body or ""
        self.excerpt = self.excerpt or ""
        self.meta_description = self.meta_description or ""
        self.content_type = self.content_type or "post"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentRecord":
        """Build a record from a loose mapping (accepts 'content' for the body)."""
        return cls(
            title=data.get("title", ""),
            body=data.get("body", data.get("content", "")),
            excerpt=data.get("excerpt", ""),
            meta_description=data.get("meta_description", data.get("metaDescription", "")),
            content_type=data.get("content_type", data.get("type", "post")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Issue:
    """A single compliance defect. Created by the detector, never mutated."""
    type: IssueType
    severity: Severity
    message: str
    quantification: Optional[dict[str, float]] = None

    @property
    def category(self) -> str:
        return self.type.category

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "quantification": dict(self.quantification) if self.quantification else None,
        }


@dataclass
class ValidationResult:
    """
    Scored outcome of one detection pass.

    Errors hold critical issues, warnings hold major and minor ones.
    """
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)
    overall_score: float = 100.0
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def issue_count(self) -> int:
        return len(self.errors) + len(self.warnings)

    @property
    def issues(self) -> list[Issue]:
        return self.errors + self.warnings

    @property
    def is_clean(self) -> bool:
        return self.issue_count == 0

    def by_severity(self) -> dict[Severity, list[Issue]]:
        """Group all issues by severity tier."""
        grouped: dict[Severity, list[Issue]] = {s: [] for s in Severity}
        for issue in self.issues:
            grouped[issue.severity].append(issue)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "overall_score": self.overall_score,
            "issue_count": self.issue_count,
            "metrics": dict(self.metrics),
        }


@dataclass
class IterationRecord:
    """One entry of the progress log (iteration 0 is the baseline)."""
    iteration: int
    type: str  # "baseline" or "optimization"
    score: float
    improvements: dict[str, float] = field(default_factory=dict)
    corrections: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProgressData:
    """Append-only iteration history plus the final verdict of a run."""
    iterations: list[IterationRecord] = field(default_factory=list)
    total_iterations: int = 0
    final_score: float = 0.0
    compliance_achieved: bool = False
    termination_reason: Optional[TerminationReason] = None
    performance_metrics: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "iterations": [it.to_dict() for it in self.iterations],
            "total_iterations": self.total_iterations,
            "final_score": self.final_score,
            "compliance_achieved": self.compliance_achieved,
            "termination_reason": self.termination_reason.value if self.termination_reason else None,
            "performance_metrics": dict(self.performance_metrics),
        }


@dataclass
class ErrorLogEntry:
    """One line of the persisted error log."""
    component: str
    error: str
    severity: str = "error"
    context: dict[str, Any] = field(default_factory=dict)
    session_id: str = ""
    user_id: str = ""
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "error": self.error,
            "severity": self.severity,
            "context": self.context,
            "session_id": self.session_id,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorLogEntry":
        return cls(
            component=data.get("component", ""),
            error=data.get("error", ""),
            severity=data.get("severity", "error"),
            context=data.get("context") or {},
            session_id=data.get("session_id", ""),
            user_id=data.get("user_id", ""),
            timestamp=data.get("timestamp", utc_now()),
        )


@dataclass
class ManualOverride:
    """Operator-approved bypass for a persistent failure."""
    component: str
    error_signature: str
    skip_validation: bool = True
    reason: str = ""
    approved_by: str = ""
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OptimizationResult:
    """What the loop manager hands back to its caller."""
    success: bool
    content: ContentRecord
    validation_result: ValidationResult
    progress_data: ProgressData
    config: dict[str, Any] = field(default_factory=dict)
    error_log: list[ErrorLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content.to_dict(),
            "validation_result": self.validation_result.to_dict(),
            "progress_data": self.progress_data.to_dict(),
            "config": dict(self.config),
            "error_log": [e.to_dict() for e in self.error_log],
        }
