"""
Meta description correction.

Expands short descriptions with keyword-bearing clauses, trims long ones at
a word boundary and falls back to a deterministic template when repeated
correction still fails validation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .text_utils import clean_text, contains_any, keyword_pattern, keyword_terms

logger = logging.getLogger(__name__)


EXPANSION_PHRASES = (
    " Learn more about {kw} and how it can benefit you.",
    " Discover everything you need to know about {kw}.",
    " Get expert insights and practical tips.",
    " Find comprehensive information and guidance.",
    " Explore detailed explanations and examples.",
    " Access valuable resources and recommendations.",
)

FALLBACK_TEMPLATES = (
    "Discover comprehensive information about {kw}. Learn key insights, best practices, and expert recommendations.",
    "Everything you need to know about {kw}. Get detailed explanations, practical tips, and valuable resources.",
    "Explore {kw} with our complete guide. Find answers, solutions, and expert advice to help you succeed.",
    "Learn about {kw} through detailed analysis and practical examples. Get the knowledge you need today.",
    "Complete guide to {kw}. Discover essential information, expert insights, and actionable recommendations.",
)


@dataclass
class MetaValidation:
    """Validation verdict for one meta description."""
    is_valid: bool
    length: int
    has_keyword: bool
    issues: list[str] = field(default_factory=list)


@dataclass
class MetaCorrection:
    """Result of auto_correct()."""
    original: str
    corrected: str
    is_valid: bool
    corrections: list[str] = field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.corrected)


@dataclass
class MetaRetryResult:
    """Result of correct_with_retry()."""
    success: bool
    meta_description: str
    attempts: int
    attempt_details: list[dict[str, Any]] = field(default_factory=list)
    used_fallback: bool = False


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


class MetaDescriptionCorrector:
    """Keeps meta descriptions within the length range and on-keyword."""

    def __init__(self, min_length: int = 120, max_length: int = 156):
        if min_length >= max_length:
            raise ValueError("min_length must be smaller than max_length")
        self.min_length = int(min_length)
        self.max_length = int(max_length)

    @classmethod
    def from_rules(cls, rules: dict[str, float]) -> "MetaDescriptionCorrector":
        return cls(
            int(rules.get("min_meta_desc_length", 120)),
            int(rules.get("max_meta_desc_length", 156)),
        )

    def validate(self, description: str, keyword: str, synonyms: Optional[Sequence[str]] = None) -> MetaValidation:
        text = description or ""
        terms = keyword_terms(keyword, synonyms)
        issues = []
        if not text.strip():
            issues.append("missing")
        if len(text) < self.min_length:
            issues.append(f"too_short ({len(text)} < {self.min_length})")
        elif len(text) > self.max_length:
            issues.append(f"too_long ({len(text)} > {self.max_length})")
        has_keyword = contains_any(text, terms) if terms else True
        if not has_keyword:
            issues.append("missing_keyword")
        return MetaValidation(not issues, len(text), has_keyword, issues)

    def auto_correct(
        self,
        description: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> MetaCorrection:
        """
        Correct a meta description in one pass.

        Args:
            description: Current description (may be empty).
            keyword: Focus keyword.
            synonyms: Secondary keywords that also satisfy the keyword check.

        Returns:
            MetaCorrection whose text is within the length range and mentions
            the keyword or a synonym.
        """
        original = description or ""
        terms = keyword_terms(keyword, synonyms)
        # The shortest term is the one most likely to survive trimming
        term = min(terms, key=len) if terms else ""
        corrections: list[str] = []

        text = clean_text(original)
        if text != original:
            corrections.append("normalized_whitespace")

        if not text:
            subject = _upper_first(term) if term else "This page"
            text = f"{subject} - comprehensive guide and information."
            corrections.append("generated_from_keyword")

        if terms and not contains_any(text, terms):
            text = self._insert_keyword(text, term)
            corrections.append("inserted_keyword")

        if len(text) < self.min_length:
            text = self._expand(text, term)
            corrections.append("expanded")

        if len(text) > self.max_length:
            text = self._trim(text, terms, term)
            corrections.append("trimmed")

        verdict = self.validate(text, keyword, synonyms)
        if corrections:
            logger.debug(f"Meta description corrected ({', '.join(corrections)}): {len(text)} chars")
        return MetaCorrection(original, text, verdict.is_valid, corrections)

    def correct_with_retry(
        self,
        description: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        max_attempts: int = 3,
    ) -> MetaRetryResult:
        """
        Auto-correct repeatedly, then fall back to a template.

        Each attempt re-validates the previous attempt's output. When every
        attempt fails the description is replaced by a fallback template
        chosen deterministically from the keyword.

        Returns:
            MetaRetryResult; ``meta_description`` is always set.
        """
        current = description or ""
        details: list[dict[str, Any]] = []

        for attempt in range(1, max(1, max_attempts) + 1):
            correction = self.auto_correct(current, keyword, synonyms)
            details.append({
                "attempt": attempt,
                "input_length": len(current),
                "output_length": correction.length,
                "is_valid": correction.is_valid,
                "corrections": list(correction.corrections),
            })
            if correction.is_valid:
                return MetaRetryResult(True, correction.corrected, attempt, details, False)
            current = correction.corrected

        fallback = self.fallback(keyword, synonyms)
        logger.warning(f"Meta description fell back to template after {len(details)} attempts")
        verdict = self.validate(fallback, keyword, synonyms)
        return MetaRetryResult(verdict.is_valid, fallback, len(details), details, True)

    def fallback(self, keyword: str, synonyms: Optional[Sequence[str]] = None) -> str:
        """Deterministic template description for a keyword."""
        terms = keyword_terms(keyword, synonyms)
        term = min(terms, key=len) if terms else "this topic"
        template = FALLBACK_TEMPLATES[sum(map(ord, term.lower())) % len(FALLBACK_TEMPLATES)]
        text = template.format(kw=term)
        if len(text) < self.min_length:
            text = self._expand(text, term)
        if len(text) > self.max_length:
            text = self._trim(text, terms, term)
        return text

    def _insert_keyword(self, text: str, term: str) -> str:
        return f"{_upper_first(term)}: {text}"

    def _expand(self, text: str, term: str) -> str:
        if not text.endswith((".", "!", "?")):
            text += "."
        # First pass: add clauses that keep the text within range
        for phrase in EXPANSION_PHRASES:
            if len(text) >= self.min_length:
                return text
            candidate = text + phrase.format(kw=term)
            if len(candidate) <= self.max_length:
                text = candidate
        # Second pass: overshoot, then let trimming bring it back
        for phrase in EXPANSION_PHRASES:
            if len(text) >= self.min_length:
                break
            text += phrase.format(kw=term)
        while len(text) < self.min_length:
            text += " Learn more."
        if len(text) > self.max_length:
            text = self._cut(text)
        return text

    def _trim(self, text: str, terms: list[str], term: str) -> str:
        # Keep the keyword inside the part that survives the cut
        first = keyword_pattern(terms).search(text) if terms else None
        if terms and (first is None or first.end() > self.min_length - 3):
            text = f"{_upper_first(term)}: {text}"

        sentence_end = max(text.rfind(". ", 0, self.max_length), text.rfind("! ", 0, self.max_length))
        if sentence_end + 1 >= self.min_length:
            return text[: sentence_end + 1]
        return self._cut(text)

    def _cut(self, text: str) -> str:
        """Cut at a word boundary so the result with an ellipsis fits the range."""
        limit = self.max_length - 3
        space = text.rfind(" ", self.min_length - 3, limit + 1)
        cut = text[:space] if space != -1 else text[:limit]
        cut = cut.rstrip(" ,;:-.")
        if len(cut) < self.min_length - 3:
            cut = text[:limit]
        return cut + "..."
