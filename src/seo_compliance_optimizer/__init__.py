"""
SEO Compliance Optimizer

A multi-pass content compliance optimizer that:
- Detects SEO and readability defects in a candidate article
- Applies automated corrections (meta description, keyword density,
  readability, title, images)
- Repeats detect-correct-score cycles until the content complies or the
  run terminates
"""

__version__ = "1.0.0"
__author__ = "SEO Content Optimizer Team"

from .config import OptimizerConfig, DEFAULT_ADAPTIVE_RULES, configure_logging

from .models import (
    ContentRecord,
    Severity,
    IssueType,
    Issue,
    ValidationResult,
    IterationRecord,
    ProgressData,
    TerminationReason,
    ErrorLogEntry,
    ManualOverride,
    OptimizationResult,
)

from .exceptions import (
    ComplianceError,
    RuleValidationError,
    ExportFormatError,
    CorrectorError,
)

# Detection and scoring
from .scoring import calculate_score, score_issues, build_validation_result
from .issue_detector import IssueDetector, ContentMetrics, issue_signature

# Correctors
from .meta_description import MetaDescriptionCorrector
from .keyword_density import KeywordDensityCalculator, KeywordDensityOptimizer
from .readability import PassiveVoiceAnalyzer, SentenceLengthAnalyzer, TransitionWordAnalyzer
from .readability_corrector import ReadabilityCorrector
from .titles import (
    TitleOptimizationEngine,
    TitleUniquenessValidator,
    TitleRegistry,
)
from .images import (
    ImagePromptGenerator,
    AltTextAccessibilityOptimizer,
    ImageCorrector,
)

# Shared state
from .error_handler import (
    ErrorHandler,
    RuleStore,
    LogSink,
    InMemoryRuleStore,
    InMemoryLogSink,
    JsonFileRuleStore,
    JsonLinesLogSink,
)
from .progress import ProgressTracker

# Loop manager
from .optimizer import MultiPassOptimizer, optimize_content

__all__ = [
    # Configuration
    "OptimizerConfig",
    "DEFAULT_ADAPTIVE_RULES",
    "configure_logging",
    # Models
    "ContentRecord",
    "Severity",
    "IssueType",
    "Issue",
    "ValidationResult",
    "IterationRecord",
    "ProgressData",
    "TerminationReason",
    "ErrorLogEntry",
    "ManualOverride",
    "OptimizationResult",
    # Exceptions
    "ComplianceError",
    "RuleValidationError",
    "ExportFormatError",
    "CorrectorError",
    # Detection and scoring
    "calculate_score",
    "score_issues",
    "build_validation_result",
    "IssueDetector",
    "ContentMetrics",
    "issue_signature",
    # Correctors
    "MetaDescriptionCorrector",
    "KeywordDensityCalculator",
    "KeywordDensityOptimizer",
    "PassiveVoiceAnalyzer",
    "SentenceLengthAnalyzer",
    "TransitionWordAnalyzer",
    "ReadabilityCorrector",
    "TitleOptimizationEngine",
    "TitleUniquenessValidator",
    "TitleRegistry",
    "ImagePromptGenerator",
    "AltTextAccessibilityOptimizer",
    "ImageCorrector",
    # Shared state
    "ErrorHandler",
    "RuleStore",
    "LogSink",
    "InMemoryRuleStore",
    "InMemoryLogSink",
    "JsonFileRuleStore",
    "JsonLinesLogSink",
    "ProgressTracker",
    # Loop manager
    "MultiPassOptimizer",
    "optimize_content",
]
