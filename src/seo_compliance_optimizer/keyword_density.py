"""
Keyword density calculation and optimization.

Body density counts focus-keyword and synonym mentions in the prose
(headings excluded) against the prose word count. Subheading usage is the
share of h1-h6 headings that mention any of the terms.

The optimizer moves body density toward a target one change at a time and
only keeps a change when it brings the density closer to the target, so
the distance to the target never grows.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .text_utils import (
    SentenceMap,
    contains_any,
    count_occurrences,
    count_words,
    extract_headings,
    keyword_pattern,
    keyword_terms,
    prose_text,
    tokenize_markup,
    render_segments,
)

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"(<[^>]+>)")

# Short, active sentences that each carry one mention and a transition word
INSERTION_TEMPLATES = (
    "Also, {kw} plays a role here.",
    "For example, {kw} helps here.",
    "Overall, {kw} matters.",
    "Indeed, {kw} is worth it.",
)
_DETERMINER_RE = re.compile(r"\b(?:the|a|an|this|that|these|those|our|your|their|its)\s+$", re.IGNORECASE)
REPLACEMENT_PHRASES = ("this approach", "this method", "this solution")
HEADING_REPLACEMENTS = ("This Topic", "The Essentials", "Key Considerations")


@dataclass
class DensityReport:
    """Keyword usage measurements for one body."""
    body_density: float
    keyword_occurrences: int
    synonym_occurrences: int
    total_words: int
    subheading_density: float
    subheadings_total: int
    subheadings_with_keyword: int

    @property
    def total_occurrences(self) -> int:
        return self.keyword_occurrences + self.synonym_occurrences

    def within(self, min_density: float, max_density: float) -> bool:
        return min_density <= self.body_density <= max_density


class KeywordDensityCalculator:
    """Measures body and subheading keyword usage."""

    def calculate_density(self, text: str, keyword: str, synonyms: Optional[Sequence[str]] = None) -> float:
        """
        Density of the keyword and synonyms in plain text, as a percentage.

        Args:
            text: Plain text (no markup).
            keyword: Focus keyword.
            synonyms: Secondary keywords counted alongside it.

        Returns:
            Density rounded to two decimals; 0.0 for empty text.
        """
        total_words = count_words(text)
        if total_words == 0:
            return 0.0
        occurrences = count_occurrences(text, keyword_terms(keyword, synonyms))
        return round(occurrences / total_words * 100, 2)

    def subheading_usage(self, body: str, keyword: str, synonyms: Optional[Sequence[str]] = None) -> tuple[float, int, int]:
        """
        Share of headings mentioning the keyword or a synonym.

        Returns:
            (percentage, headings with keyword, total headings)
        """
        headings = extract_headings(body)
        if not headings:
            return 0.0, 0, 0
        terms = keyword_terms(keyword, synonyms)
        with_keyword = sum(1 for h in headings if contains_any(h, terms))
        return round(with_keyword / len(headings) * 100, 2), with_keyword, len(headings)

    def analyze(self, body: str, keyword: str, synonyms: Optional[Sequence[str]] = None) -> DensityReport:
        text = prose_text(body)
        terms = keyword_terms(keyword, synonyms)
        total = count_occurrences(text, terms)
        focus = min(total, count_occurrences(text, terms[:1]))
        sub_pct, sub_with, sub_total = self.subheading_usage(body, keyword, synonyms)
        return DensityReport(
            body_density=self.calculate_density(text, keyword, synonyms),
            keyword_occurrences=focus,
            synonym_occurrences=total - focus,
            total_words=count_words(text),
            subheading_density=sub_pct,
            subheadings_total=sub_total,
            subheadings_with_keyword=sub_with,
        )


@dataclass
class DensityOptimization:
    """Outcome of one optimize() call."""
    content: str
    optimized: bool
    changes_made: list[str] = field(default_factory=list)
    density_before: float = 0.0
    density_after: float = 0.0
    subheading_before: float = 0.0
    subheading_after: float = 0.0


def _sub_outside_tags(text: str, pattern: re.Pattern, repl, count: int = 0) -> tuple[str, int]:
    """Apply a substitution to the text between inline tags only."""
    pieces = _TAG_RE.split(text)
    total = 0
    for index in range(0, len(pieces), 2):
        remaining = count - total if count else 0
        if count and remaining <= 0:
            break
        pieces[index], n = pattern.subn(repl, pieces[index], count=remaining)
        total += n
    return "".join(pieces), total


class KeywordDensityOptimizer:
    """
    Brings body keyword density and subheading usage into range.

    Density is raised by appending short keyword sentences after existing
    sentences and lowered by swapping later mentions for neutral phrases.
    Either way the prose word count moves by at most ``max_word_change``.
    """

    def __init__(
        self,
        calculator: Optional[KeywordDensityCalculator] = None,
        min_density: float = 0.5,
        max_density: float = 2.5,
        max_subheading_usage: float = 75.0,
        max_word_change: float = 0.10,
    ):
        self.calculator = calculator or KeywordDensityCalculator()
        self.min_density = min_density
        self.max_density = max_density
        self.max_subheading_usage = max_subheading_usage
        self.max_word_change = max_word_change

    @classmethod
    def from_rules(cls, rules: dict[str, float]) -> "KeywordDensityOptimizer":
        return cls(
            min_density=rules.get("min_keyword_density", 0.5),
            max_density=rules.get("max_keyword_density", 2.5),
            max_subheading_usage=rules.get("max_subheading_keyword_usage", 75.0),
        )

    @property
    def default_target(self) -> float:
        # A quarter of the way into the range keeps the prose natural
        return round(self.min_density + (self.max_density - self.min_density) / 4, 2)

    def optimize(
        self,
        content: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        target_density: Optional[float] = None,
    ) -> DensityOptimization:
        """
        Optimize keyword usage in a body.

        Args:
            content: Body (HTML fragment or plain text).
            keyword: Focus keyword.
            synonyms: Secondary keywords.
            target_density: Desired body density (defaults to default_target).

        Returns:
            DensityOptimization with the new body and the list of changes.
        """
        target = self.default_target if target_density is None else target_density
        before = self.calculator.analyze(content, keyword, synonyms)
        changes: list[str] = []
        body = content or ""

        if not keyword or not keyword.strip():
            return DensityOptimization(body, False, changes, before.body_density,
                                       before.body_density, before.subheading_density,
                                       before.subheading_density)

        if before.subheading_density > self.max_subheading_usage:
            body = self._reduce_subheading_usage(body, keyword, synonyms, before, changes)

        density = before.body_density
        if density < self.min_density:
            body = self._raise_density(body, keyword, synonyms, target, changes)
        elif density > self.max_density:
            body = self._lower_density(body, keyword, synonyms, target, changes)

        after = self.calculator.analyze(body, keyword, synonyms)
        logger.info(
            f"Keyword density {before.body_density}% -> {after.body_density}%, "
            f"subheadings {before.subheading_density}% -> {after.subheading_density}%"
        )
        return DensityOptimization(
            content=body,
            optimized=bool(changes),
            changes_made=changes,
            density_before=before.body_density,
            density_after=after.body_density,
            subheading_before=before.subheading_density,
            subheading_after=after.subheading_density,
        )

    def _word_budget(self, body: str) -> int:
        return int(count_words(prose_text(body)) * self.max_word_change)

    def _raise_density(self, body, keyword, synonyms, target, changes) -> str:
        budget = self._word_budget(body)
        added = 0
        inserted = 0
        current = self.calculator.calculate_density(prose_text(body), keyword, synonyms)

        while current < target:
            phrase = INSERTION_TEMPLATES[inserted % len(INSERTION_TEMPLATES)].format(kw=keyword)
            cost = count_words(phrase)
            if added + cost > budget:
                break
            candidate = self._insert_sentence(body, phrase, inserted)
            if candidate is None:
                break
            new_density = self.calculator.calculate_density(prose_text(candidate), keyword, synonyms)
            if abs(new_density - target) >= abs(current - target):
                break
            body, current = candidate, new_density
            added += cost
            inserted += 1
            changes.append(f"inserted_keyword: {phrase!r}")

        return body

    def _insert_sentence(self, body: str, phrase: str, position: int) -> Optional[str]:
        """Append a sentence after an existing one, spreading insertions out."""
        sentence_map = SentenceMap(body)
        slots = [
            i for i, s in enumerate(sentence_map.sentences)
            if s.rstrip().endswith((".", "!", "?"))
        ]
        if not slots:
            return None
        # Walk the document in large strides so mentions do not cluster
        stride = max(1, len(slots) // 4)
        index = slots[(position * stride + len(slots) // 2) % len(slots)]
        sentence_map.replace(index, f"{sentence_map.sentences[index]} {phrase}")
        return sentence_map.render()

    def _lower_density(self, body, keyword, synonyms, target, changes) -> str:
        pattern = keyword_pattern(keyword_terms(keyword, synonyms))
        budget = self._word_budget(body)
        net_change = 0
        current = self.calculator.calculate_density(prose_text(body), keyword, synonyms)
        replaced = 0

        while current > target:
            replacement = REPLACEMENT_PHRASES[replaced % len(REPLACEMENT_PHRASES)]
            candidate, original = self._replace_last_mention(body, pattern, replacement)
            if candidate is None:
                break
            delta = count_words(replacement) - count_words(original)
            if abs(net_change + delta) > budget:
                break
            new_density = self.calculator.calculate_density(prose_text(candidate), keyword, synonyms)
            if abs(new_density - target) >= abs(current - target):
                break
            body, current = candidate, new_density
            net_change += delta
            replaced += 1
            changes.append(f"replaced_keyword: {original!r} -> {replacement!r}")

        return body

    def _replace_last_mention(self, body: str, pattern: re.Pattern, replacement: str):
        """Replace the last prose mention, keeping the first one in place."""
        segments = tokenize_markup(body)
        prose = [i for i, s in enumerate(segments) if s.is_prose]

        mentions = []
        for seg_index in prose:
            pieces = _TAG_RE.split(segments[seg_index].value)
            for piece_index in range(0, len(pieces), 2):
                for match in pattern.finditer(pieces[piece_index]):
                    mentions.append((seg_index, piece_index, match))
        if len(mentions) < 2:
            return None, ""

        seg_index, piece_index, match = mentions[-1]
        pieces = _TAG_RE.split(segments[seg_index].value)
        text = pieces[piece_index]
        head = text[:match.start()]
        original = match.group(0)

        # "the keyword" must not become "the this approach"
        determiner = _DETERMINER_RE.search(head)
        if determiner:
            original = determiner.group(0) + original
            head = head[:determiner.start()]
        if not head.strip() or head.rstrip().endswith((".", "!", "?")):
            replacement = replacement.capitalize()

        pieces[piece_index] = head + replacement + text[match.end():]
        segments[seg_index].value = "".join(pieces)
        return render_segments(segments), original

    def _reduce_subheading_usage(self, body, keyword, synonyms, report, changes) -> str:
        terms = keyword_terms(keyword, synonyms)
        pattern = keyword_pattern(terms)
        total = report.subheadings_total
        allowed = math.floor(self.max_subheading_usage * total / 100)
        to_rewrite = max(1, report.subheadings_with_keyword - allowed)

        replacements = [r for r in HEADING_REPLACEMENTS if not contains_any(r, terms)] or ["This Subject"]

        segments = tokenize_markup(body)
        heading_segments = [
            i for i, s in enumerate(segments)
            if s.kind == "heading" and contains_any(s.value, terms)
        ]
        # Keep the earliest headings; rewrite from the end of the document
        rewritten = 0
        for seg_index in reversed(heading_segments[1:] or heading_segments):
            if rewritten >= to_rewrite:
                break
            replacement = replacements[rewritten % len(replacements)]
            original = segments[seg_index].value
            new_value, count = _sub_outside_tags(
                original,
                pattern,
                lambda m, r=replacement: r if m.group(0)[:1].isupper() else r.lower(),
            )
            if count and new_value.strip():
                segments[seg_index].value = new_value
                rewritten += 1
                changes.append(f"rewrote_subheading: {original.strip()!r} -> {new_value.strip()!r}")

        return render_segments(segments)
