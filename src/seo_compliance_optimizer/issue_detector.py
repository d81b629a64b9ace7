"""
Issue detection for candidate articles.

Each rule is evaluated independently against the current thresholds and
emits at most one Issue per violation (alt text emits one per offending
image). Degenerate input never raises: an empty record simply produces
critical issues.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Mapping, Optional, Sequence

from .config import DEFAULT_ADAPTIVE_RULES
from .images import alt_text_problems
from .keyword_density import KeywordDensityCalculator
from .models import ContentRecord, Issue, IssueType, Severity, ValidationResult
from .readability import PassiveVoiceAnalyzer, SentenceLengthAnalyzer, TransitionWordAnalyzer
from .scoring import build_validation_result
from .text_utils import contains_any, extract_images, keyword_terms, prose_sentences, prose_text

logger = logging.getLogger(__name__)


def issue_signature(issue: Issue) -> str:
    """
    Stable text identifying a kind of failure, independent of its numbers.

    Used as the error message for failure statistics and as the key for
    manual overrides.
    """
    q = issue.quantification or {}
    if "needed" in q:
        return f"{issue.type.value}: too short"
    if "excess" in q:
        return f"{issue.type.value}: too long"
    if issue.type == IssueType.KEYWORD_DENSITY and "density" in q:
        return f"{issue.type.value}: too {'low' if q['density'] < q['min'] else 'high'}"
    return issue.type.value


@dataclass
class ContentMetrics:
    """Measurements taken from one content record."""
    title_length: int = 0
    title_has_keyword: bool = False
    meta_description_length: int = 0
    meta_has_keyword: bool = False
    word_count: int = 0
    sentence_count: int = 0
    keyword_density: float = 0.0
    subheading_usage: float = 0.0  # % of headings mentioning the keyword
    subheadings_total: int = 0
    passive_percentage: float = 0.0
    long_sentence_percentage: float = 0.0
    transition_percentage: float = 0.0
    image_count: int = 0
    invalid_alt_texts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class IssueDetector:
    """
    Evaluates SEO and readability rules against a ContentRecord.

    Thresholds are read from the rule mapping given at construction
    (normally the adaptive rule store's current snapshot); missing keys
    fall back to DEFAULT_ADAPTIVE_RULES.
    """

    def __init__(self, rules: Optional[Mapping[str, float]] = None):
        self.rules: dict[str, float] = {**DEFAULT_ADAPTIVE_RULES, **(rules or {})}
        self.density_calculator = KeywordDensityCalculator()
        self.passive_analyzer = PassiveVoiceAnalyzer(self.rules["max_passive_voice"])
        self.length_analyzer = SentenceLengthAnalyzer(
            int(self.rules["max_sentence_length"]), self.rules["max_long_sentences"]
        )
        self.transition_analyzer = TransitionWordAnalyzer(self.rules["min_transition_words"])

    def measure(
        self,
        content: ContentRecord,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> ContentMetrics:
        terms = keyword_terms(keyword, synonyms)
        sentences = prose_sentences(content.body)
        density = self.density_calculator.analyze(content.body, keyword, synonyms)
        images = extract_images(content.body)
        min_alt, max_alt = int(self.rules["min_alt_text_length"]), int(self.rules["max_alt_text_length"])

        return ContentMetrics(
            title_length=len(content.title),
            title_has_keyword=bool(keyword) and keyword.lower() in content.title.lower(),
            meta_description_length=len(content.meta_description),
            meta_has_keyword=contains_any(content.meta_description, terms) if terms else True,
            word_count=density.total_words,
            sentence_count=len(sentences),
            keyword_density=density.body_density,
            subheading_usage=density.subheading_density,
            subheadings_total=density.subheadings_total,
            passive_percentage=self.passive_analyzer.analyze_sentences(sentences).passive_percentage,
            long_sentence_percentage=self.length_analyzer.analyze_sentences(sentences).long_sentence_percentage,
            transition_percentage=self.transition_analyzer.analyze_sentences(sentences).transition_percentage,
            image_count=len(images),
            invalid_alt_texts=sum(
                1 for img in images if alt_text_problems(img["alt"], terms, min_alt, max_alt)
            ),
        )

    def detect(
        self,
        content: ContentRecord,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> list[Issue]:
        """
        Detect every rule violation in a content record.

        Args:
            content: Record to inspect.
            keyword: Focus keyword.
            synonyms: Secondary keywords counted toward keyword checks.

        Returns:
            Issues in rule order (meta, title, body, readability, images).
        """
        issues: list[Issue] = []
        issues.extend(self._meta_issues(content.meta_description, keyword, synonyms))
        issues.extend(self._title_issues(content.title, keyword))

        if not prose_text(content.body).strip():
            issues.append(Issue(IssueType.CONTENT_MISSING, Severity.CRITICAL, "Content body is empty"))
            return issues

        issues.extend(self._density_issues(content.body, keyword, synonyms))
        issues.extend(self._readability_issues(content.body))
        issues.extend(self._image_issues(content.body, keyword, synonyms))
        return issues

    def validate(
        self,
        content: ContentRecord,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        skip: Optional[Callable[[Issue], bool]] = None,
    ) -> ValidationResult:
        """
        Detect issues and score them.

        Args:
            skip: Predicate marking issues bypassed by a manual override;
                skipped issues are neither reported nor scored.
        """
        issues = [i for i in self.detect(content, keyword, synonyms) if skip is None or not skip(i)]
        metrics = self.measure(content, keyword, synonyms).to_dict()
        result = build_validation_result(issues, metrics)
        logger.debug(
            f"Detected {len(result.errors)} errors and {len(result.warnings)} warnings "
            f"(score {result.overall_score})"
        )
        return result

    def _meta_issues(self, meta: str, keyword: str, synonyms) -> list[Issue]:
        if not meta or not meta.strip():
            return [Issue(IssueType.META_DESCRIPTION_MISSING, Severity.CRITICAL, "Meta description is missing")]
        issues = []
        low, high = int(self.rules["min_meta_desc_length"]), int(self.rules["max_meta_desc_length"])
        length = len(meta)
        if length < low:
            issues.append(Issue(
                IssueType.META_DESCRIPTION_LENGTH, Severity.MAJOR,
                f"Meta description too short ({length} characters, minimum {low})",
                {"length": length, "min": low, "needed": low - length},
            ))
        elif length > high:
            issues.append(Issue(
                IssueType.META_DESCRIPTION_LENGTH, Severity.MAJOR,
                f"Meta description too long ({length} characters, maximum {high})",
                {"length": length, "max": high, "excess": length - high},
            ))
        terms = keyword_terms(keyword, synonyms)
        if terms and not contains_any(meta, terms):
            issues.append(Issue(
                IssueType.META_DESCRIPTION_KEYWORD, Severity.MAJOR,
                "Meta description does not contain the focus keyword or a synonym",
            ))
        return issues

    def _title_issues(self, title: str, keyword: str) -> list[Issue]:
        if not title or not title.strip():
            return [Issue(IssueType.TITLE_MISSING, Severity.CRITICAL, "Title is missing")]
        issues = []
        limit = int(self.rules["max_title_length"])
        if len(title) > limit:
            issues.append(Issue(
                IssueType.TITLE_LENGTH, Severity.MAJOR,
                f"Title too long ({len(title)} characters, maximum {limit})",
                {"length": len(title), "max": limit, "excess": len(title) - limit},
            ))
        if keyword and keyword.lower() not in title.lower():
            issues.append(Issue(
                IssueType.TITLE_KEYWORD, Severity.CRITICAL,
                f"Title does not contain the focus keyword {keyword!r}",
            ))
        return issues

    def _density_issues(self, body: str, keyword: str, synonyms) -> list[Issue]:
        if not keyword:
            return []
        issues = []
        report = self.density_calculator.analyze(body, keyword, synonyms)
        low, high = self.rules["min_keyword_density"], self.rules["max_keyword_density"]
        if not report.within(low, high):
            direction = "below" if report.body_density < low else "above"
            issues.append(Issue(
                IssueType.KEYWORD_DENSITY, Severity.MAJOR,
                f"Keyword density {report.body_density}% is {direction} the {low}-{high}% range",
                {"density": report.body_density, "min": low, "max": high,
                 "occurrences": report.total_occurrences, "words": report.total_words},
            ))
        limit = self.rules["max_subheading_keyword_usage"]
        if report.subheadings_total and report.subheading_density > limit:
            issues.append(Issue(
                IssueType.SUBHEADING_KEYWORD_USAGE, Severity.MAJOR,
                f"{report.subheading_density}% of subheadings use the keyword (maximum {limit}%)",
                {"usage": report.subheading_density, "max": limit,
                 "with_keyword": report.subheadings_with_keyword, "total": report.subheadings_total},
            ))
        return issues

    def _readability_issues(self, body: str) -> list[Issue]:
        issues = []
        sentences = prose_sentences(body)
        passive = self.passive_analyzer.analyze_sentences(sentences)
        if not passive.is_compliant:
            issues.append(Issue(
                IssueType.PASSIVE_VOICE, Severity.MAJOR,
                f"Passive voice in {passive.passive_percentage}% of sentences (maximum {passive.max_allowed}%)",
                {"percentage": passive.passive_percentage, "max": passive.max_allowed,
                 "count": passive.passive_count},
            ))
        lengths = self.length_analyzer.analyze_sentences(sentences)
        if not lengths.is_compliant:
            issues.append(Issue(
                IssueType.LONG_SENTENCES, Severity.MAJOR,
                f"{lengths.long_sentence_percentage}% of sentences exceed "
                f"{lengths.max_sentence_length} words (maximum {lengths.max_allowed_percentage}%)",
                {"percentage": lengths.long_sentence_percentage,
                 "max": lengths.max_allowed_percentage, "count": lengths.long_count},
            ))
        transitions = self.transition_analyzer.analyze_sentences(sentences)
        if not transitions.is_compliant:
            issues.append(Issue(
                IssueType.TRANSITION_WORDS, Severity.MINOR,
                f"Transition words in {transitions.transition_percentage}% of sentences "
                f"(minimum {transitions.min_required}%)",
                {"percentage": transitions.transition_percentage, "min": transitions.min_required},
            ))
        return issues

    def _image_issues(self, body: str, keyword: str, synonyms) -> list[Issue]:
        images = extract_images(body)
        if not images:
            return [Issue(IssueType.IMAGE_MISSING, Severity.MAJOR, "Content has no images")]
        terms = keyword_terms(keyword, synonyms)
        low, high = int(self.rules["min_alt_text_length"]), int(self.rules["max_alt_text_length"])
        issues = []
        for index, image in enumerate(images):
            problems = alt_text_problems(image["alt"], terms, low, high)
            if problems:
                issues.append(Issue(
                    IssueType.ALT_TEXT, Severity.MAJOR,
                    f"Image {index + 1} has invalid alt text: {', '.join(problems)}",
                    {"image_index": index, "length": len(image["alt"] or "")},
                ))
        return issues
