"""
Multi-pass optimization orchestration.

The loop manager scores a baseline, then repeats detect -> correct ->
rescore until the content is compliant, the iteration budget runs out or
the score stops moving:

    Baseline --(compliant)--> Terminal [initial_compliance]
    Baseline --> Optimizing --(score >= target)--> Terminal [compliance_achieved]
                 Optimizing --(iteration == max)--> Terminal [max_iterations_reached]
                 Optimizing --(no gain)----------> Terminal [stagnation_detected]
                 Optimizing --(small gain)-------> Terminal [insufficient_improvement]
                 Optimizing --(exception)--------> Terminal [critical_error]

The best content seen so far is what the caller gets back, so the reported
score never drops below any earlier iteration's score.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .config import OptimizerConfig, configure_logging
from .error_handler import ErrorHandler
from .exceptions import CorrectorError
from .images import ImageCorrector
from .issue_detector import IssueDetector, issue_signature
from .keyword_density import KeywordDensityOptimizer
from .meta_description import MetaDescriptionCorrector
from .models import (
    ContentRecord,
    ErrorLogEntry,
    Issue,
    IterationRecord,
    OptimizationResult,
    ProgressData,
    Severity,
    TerminationReason,
    ValidationResult,
)
from .progress import ProgressTracker
from .readability_corrector import ReadabilityCorrector
from .titles import (
    TITLE_TEMPLATES,
    TitleOptimizationEngine,
    TitleRegistry,
    TitleUniquenessValidator,
    title_case,
)

logger = logging.getLogger(__name__)


SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.MAJOR: 1, Severity.MINOR: 2}
LOG_SEVERITY = {Severity.CRITICAL: "error", Severity.MAJOR: "warning", Severity.MINOR: "info"}

FALLBACK_BODY = (
    "<h2>Understanding {kw}</h2>\n"
    "<p>{Kw} is a topic that many readers want to understand better. "
    "This guide covers the main ideas in clear and simple terms. "
    "First, it explains the basics. "
    "Then, it looks at practical steps you can take today.</p>\n"
    "<h2>Getting Started</h2>\n"
    "<p>Start with a clear goal and a simple plan. "
    "Next, review the resources you already have. "
    "Also, set aside time to practice each step. "
    "As a result, progress becomes easier to measure.</p>\n"
    "<h2>Next Steps</h2>\n"
    "<p>Finally, keep notes on what works and what does not. "
    "In addition, ask for feedback from people you trust. "
    "Above all, apply what you learn about {kw} in small, steady steps.</p>"
)


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


class _RunCorrectors:
    """Correctors built from one snapshot of the adaptive rules."""

    def __init__(self, rules: dict[str, float], title_registry: TitleRegistry):
        self.detector = IssueDetector(rules)
        self.meta = MetaDescriptionCorrector.from_rules(rules)
        self.density = KeywordDensityOptimizer.from_rules(rules)
        self.readability = ReadabilityCorrector.from_rules(rules)
        self.images = ImageCorrector.from_rules(rules)
        max_title = int(rules.get("max_title_length", 66))
        self.titles = TitleOptimizationEngine(
            TitleUniquenessValidator(title_registry, max_length=max_title), max_length=max_title
        )


class MultiPassOptimizer:
    """
    Loop manager for iterative compliance optimization.

    Args:
        config: Run configuration (defaults to OptimizerConfig()).
        error_handler: Shared error log and adaptive rule store. Runs read
            their thresholds from it once, at the start of each run.
        title_registry: Titles already in use, for uniqueness checks.
    """

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        error_handler: Optional[ErrorHandler] = None,
        title_registry: Optional[TitleRegistry] = None,
    ):
        self.config = config or OptimizerConfig()
        self.error_handler = error_handler or ErrorHandler()
        self.title_registry = title_registry if title_registry is not None else TitleRegistry()
        self.last_tracker: Optional[ProgressTracker] = None
        configure_logging(self.config.log_level)

    def optimize(
        self,
        content: ContentRecord,
        focus_keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> OptimizationResult:
        """
        Optimize a content record until it complies or the loop terminates.

        Args:
            content: Candidate article. The caller's record is not modified.
            focus_keyword: Primary SEO keyword.
            synonyms: Secondary keywords, in priority order.

        Returns:
            OptimizationResult carrying the best content produced, its
            validation result and the iteration history.
        """
        started = time.perf_counter()
        synonyms = list(synonyms or [])
        config = self.config
        correctors = _RunCorrectors(self.error_handler.get_adaptive_rules(), self.title_registry)
        run_log: list[ErrorLogEntry] = []
        skip = self._override_filter()

        current = replace(content)
        validation = correctors.detector.validate(current, focus_keyword, synonyms, skip)
        baseline_score = validation.overall_score
        logger.info(f"Starting optimization for {current.title or 'untitled content'!r}: baseline {baseline_score}")

        progress = ProgressData()
        progress.iterations.append(IterationRecord(0, "baseline", baseline_score))
        tracker = ProgressTracker()
        tracker.start_session(current, baseline_score, validation.issues)
        self.last_tracker = tracker

        best_content, best_score = replace(current), baseline_score
        reason: Optional[TerminationReason] = None

        if baseline_score >= config.target_compliance_score:
            reason = TerminationReason.INITIAL_COMPLIANCE
        elif not config.auto_correction:
            reason = TerminationReason.INSUFFICIENT_IMPROVEMENT
            logger.info("Auto-correction disabled; validation only")
        else:
            stagnation_count = 0
            recent_gains: list[float] = []
            for iteration in range(1, config.max_iterations + 1):
                pass_started = time.perf_counter()
                previous = validation
                try:
                    current, corrections = self._correct(
                        correctors, current, focus_keyword, synonyms, previous.issues
                    )
                    validation = correctors.detector.validate(current, focus_keyword, synonyms, skip)
                except Exception as exc:
                    logger.exception(f"Optimization iteration {iteration} failed")
                    run_log.append(self.error_handler.log_validation_failure(
                        "optimizer",
                        f"Critical error during iteration {iteration}: {exc}",
                        {"iteration": iteration, "exception": type(exc).__name__},
                        severity="critical",
                    ))
                    reason = TerminationReason.CRITICAL_ERROR
                    break

                score = validation.overall_score
                gain = round(score - previous.overall_score, 2)
                record = tracker.record_pass(
                    iteration, current, previous.overall_score, score,
                    previous.issues, validation.issues, corrections,
                    time.perf_counter() - pass_started,
                )
                progress.iterations.append(IterationRecord(
                    iteration,
                    "optimization",
                    score,
                    improvements={
                        "score_improvement": record.score_improvement,
                        "error_reduction": len(previous.errors) - len(validation.errors),
                        "warning_reduction": len(previous.warnings) - len(validation.warnings),
                    },
                    corrections=corrections,
                ))
                progress.total_iterations = iteration
                logger.info(f"Iteration {iteration}: score {score} ({gain:+}), {len(corrections)} corrections")

                if score > best_score:
                    best_content, best_score = replace(current), score

                if score >= config.target_compliance_score:
                    reason = TerminationReason.COMPLIANCE_ACHIEVED
                    break
                if iteration == config.max_iterations:
                    reason = TerminationReason.MAX_ITERATIONS_REACHED
                    break
                if config.enable_early_termination:
                    if gain < config.min_improvement_threshold:
                        stagnation_count += 1
                        recent_gains.append(gain)
                    else:
                        stagnation_count = 0
                        recent_gains.clear()
                    if stagnation_count >= config.stagnation_threshold:
                        # No gain at all is stagnation; a gain below the minimum is not enough
                        if all(g <= 0 for g in recent_gains):
                            reason = TerminationReason.STAGNATION_DETECTED
                        else:
                            reason = TerminationReason.INSUFFICIENT_IMPROVEMENT
                        break

        final_validation = correctors.detector.validate(best_content, focus_keyword, synonyms, skip)
        progress.final_score = best_score
        progress.compliance_achieved = best_score >= config.target_compliance_score
        progress.termination_reason = reason
        progress.performance_metrics = {
            "total_duration": round(time.perf_counter() - started, 4),
            "final_compliance_score": best_score,
            "initial_score": baseline_score,
            "total_improvement": round(best_score - baseline_score, 2),
        }
        tracker.end_session(progress.compliance_achieved, reason.value, best_score)

        if not progress.compliance_achieved:
            run_log.extend(self._log_remaining_issues(final_validation))
        logger.info(
            f"Optimization finished: {reason.value}, score {best_score} "
            f"after {progress.total_iterations} iterations"
        )
        return OptimizationResult(
            success=reason != TerminationReason.CRITICAL_ERROR,
            content=best_content,
            validation_result=final_validation,
            progress_data=progress,
            config=config.to_dict(),
            error_log=run_log,
        )

    def rollback_to_pass(self, pass_number: int) -> Optional[ContentRecord]:
        """Content as it was after a pass of the most recent run."""
        if self.last_tracker is None:
            return None
        return self.last_tracker.rollback_to_pass(pass_number)

    def progress_report(self) -> dict:
        return self.last_tracker.report() if self.last_tracker else {}

    def _override_filter(self) -> Callable[[Issue], bool]:
        handler = self.error_handler

        def skip(issue: Issue) -> bool:
            override = handler.get_manual_override(issue.category, issue_signature(issue))
            return override is not None and override.skip_validation

        return skip

    def _log_remaining_issues(self, validation: ValidationResult) -> list[ErrorLogEntry]:
        entries = []
        for issue in validation.issues:
            entries.append(self.error_handler.log_validation_failure(
                issue.category,
                issue_signature(issue),
                {"message": issue.message, "quantification": issue.quantification},
                severity=LOG_SEVERITY[issue.severity],
            ))
        return entries

    def _ordered_categories(self, issues: Sequence[Issue]) -> list[str]:
        """Corrector families to run, most severe first, ties by priority order."""
        priority = {name: index for index, name in enumerate(self.config.priority_order)}
        ranks: dict[str, int] = {}
        for issue in issues:
            category = issue.category
            if category != "content" and category not in priority:
                continue
            ranks[category] = min(ranks.get(category, 99), SEVERITY_RANK[issue.severity])
        # An empty body must be filled before anything else can be corrected
        return sorted(ranks, key=lambda c: (c != "content", ranks[c], priority.get(c, -1)))

    def _correct(
        self,
        correctors: _RunCorrectors,
        content: ContentRecord,
        keyword: str,
        synonyms: list[str],
        issues: Sequence[Issue],
    ) -> tuple[ContentRecord, list[str]]:
        """Apply one round of corrections; returns a new record and its change list."""
        content = replace(content)
        corrections: list[str] = []
        for category in self._ordered_categories(issues):
            try:
                changes = self._apply(correctors, category, content, keyword, synonyms)
            except CorrectorError:
                raise
            except Exception as exc:
                raise CorrectorError(category, str(exc)) from exc
            corrections.extend(f"{category}: {change}" for change in changes)
        return content, corrections

    def _apply(
        self,
        correctors: _RunCorrectors,
        category: str,
        content: ContentRecord,
        keyword: str,
        synonyms: list[str],
    ) -> list[str]:
        if category == "content":
            term = keyword or "this topic"
            content.body = FALLBACK_BODY.format(kw=term, Kw=_upper_first(term))
            return ["generated_fallback_body"]

        if category == "meta_description":
            result = correctors.meta.correct_with_retry(content.meta_description, keyword, synonyms)
            content.meta_description = result.meta_description
            return ["fallback_template" if result.used_fallback else f"corrected in {result.attempts} attempts"]

        if category == "keyword_density":
            result = correctors.density.optimize(content.body, keyword, synonyms)
            content.body = result.content
            return result.changes_made

        if category == "readability":
            result = correctors.readability.correct_readability(content.body)
            content.body = result.corrected_content
            return [change for changes in result.changes_made.values() for change in changes]

        if category == "title":
            title = self._fix_title(correctors.titles, content, keyword)
            changes = [f"{content.title!r} -> {title!r}"] if title != content.title else []
            content.title = title
            return changes

        if category == "images":
            result = correctors.images.correct(content.body, keyword, synonyms, topic=content.title)
            content.body = result.content
            return result.changes_made

        raise ValueError(f"Unknown corrector family: {category}")

    def _fix_title(self, engine: TitleOptimizationEngine, content: ContentRecord, keyword: str) -> str:
        title = content.title.strip()
        if not keyword:
            return title or "Untitled Article"

        if title:
            candidate = title if keyword.lower() in title.lower() else f"{title_case(keyword)}: {title}"
            candidate = engine.optimize_title_length(candidate, keyword)
            if keyword.lower() in candidate.lower() and len(candidate) <= engine.max_length:
                return candidate

        content_type = content.content_type if content.content_type in TITLE_TEMPLATES else "how_to"
        result = engine.generate_optimized_title(keyword, content_type=content_type)
        return result.title or title


def optimize_content(
    content: ContentRecord,
    focus_keyword: str,
    synonyms: Optional[Sequence[str]] = None,
    config: Optional[OptimizerConfig] = None,
    error_handler: Optional[ErrorHandler] = None,
) -> OptimizationResult:
    """Run one optimization with a throwaway loop manager."""
    return MultiPassOptimizer(config, error_handler).optimize(content, focus_keyword, synonyms)
