# -*- coding: utf-8 -*-
"""
Centralized configuration for the SEO compliance optimizer.

This module provides the per-run optimizer configuration, the default
adaptive rule thresholds read by the detector and correctors, and the
logging setup helper.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Literal


# Type alias for log verbosity accepted in the config
LogLevel = Literal["debug", "info", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Corrector families in the order the loop manager applies them
DEFAULT_PRIORITY_ORDER: tuple[str, ...] = (
    "meta_description",
    "keyword_density",
    "readability",
    "title",
    "images",
)

# Named numeric thresholds shared by every run. Updates go through the
# error handler's rule store, never through this mapping.
DEFAULT_ADAPTIVE_RULES: dict[str, float] = {
    "min_meta_desc_length": 120,
    "max_meta_desc_length": 156,
    "min_keyword_density": 0.5,
    "max_keyword_density": 2.5,
    "max_passive_voice": 10.0,
    "max_long_sentences": 25.0,
    "min_transition_words": 30.0,
    "max_title_length": 66,
    "max_subheading_keyword_usage": 75.0,
    "max_sentence_length": 20,
    "min_alt_text_length": 10,
    "max_alt_text_length": 125,
}


@dataclass
class OptimizerConfig:
    """
    Configuration for one multi-pass optimization run.

    Attributes:
        max_iterations: Upper bound on optimization iterations (baseline excluded).
        target_compliance_score: A run is compliant once its score is at or
            above this value.
        enable_early_termination: Stop early when iterations stop improving.
        stagnation_threshold: Number of consecutive low-improvement
            iterations that counts as stagnation.
        min_improvement_threshold: Score gain below which an iteration is
            considered not to have improved anything.
        auto_correction: When False the run only validates.
        log_level: Verbosity applied by configure_logging().
        priority_order: Corrector families in application order.
    """

    max_iterations: int = 5
    target_compliance_score: float = 100.0
    enable_early_termination: bool = True
    stagnation_threshold: int = 2
    min_improvement_threshold: float = 1.0
    auto_correction: bool = True
    log_level: LogLevel = "info"
    priority_order: tuple[str, ...] = field(default=DEFAULT_PRIORITY_ORDER)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if not 0 <= self.target_compliance_score <= 100:
            raise ValueError("target_compliance_score must be between 0 and 100")
        if self.stagnation_threshold < 1:
            raise ValueError("stagnation_threshold must be at least 1")
        if self.min_improvement_threshold < 0:
            raise ValueError("min_improvement_threshold must be non-negative")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        self.priority_order = tuple(self.priority_order)
        unknown = set(self.priority_order) - set(DEFAULT_PRIORITY_ORDER)
        if unknown:
            raise ValueError(f"Unknown corrector families in priority_order: {sorted(unknown)}")

    @classmethod
    def strict(cls) -> "OptimizerConfig":
        """Create a config that insists on full compliance."""
        return cls(max_iterations=10, target_compliance_score=100.0)

    @classmethod
    def lenient(cls) -> "OptimizerConfig":
        """Create a config that accepts mostly-compliant content quickly."""
        return cls(max_iterations=3, target_compliance_score=80.0)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["priority_order"] = list(self.priority_order)
        return data


def configure_logging(level: str = "info") -> logging.Logger:
    """
    Apply a log level to the package logger.

    A stream handler is attached only when the logger has none, so repeated
    calls never duplicate output.

    Args:
        level: One of debug, info, warning, error.

    Returns:
        The package logger.
    """
    package_logger = logging.getLogger("seo_compliance_optimizer")
    package_logger.setLevel(_LOG_LEVELS.get(level, logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        package_logger.addHandler(handler)

    return package_logger
