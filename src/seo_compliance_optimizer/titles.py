"""
Title generation and uniqueness validation.

The engine fills per-content-type templates with the focus keyword,
shortens candidates that run over the length limit and retries until a
candidate passes the requirements and is unique against the registry of
existing titles.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from difflib import SequenceMatcher
from typing import Any, Iterable, Optional, Sequence

logger = logging.getLogger(__name__)


TITLE_TEMPLATES: dict[str, tuple[str, ...]] = {
    "how_to": (
        "How to Master {keyword} in {year}",
        "{keyword}: A Step-by-Step Guide",
        "{keyword} Guide: How to Get Started",
        "How to Use {keyword} the Right Way",
    ),
    "listicle": (
        "{number} {keyword} Tips for {audience}",
        "Top {number} {keyword} Strategies That Work",
        "{keyword}: {number} Proven Tips for {audience}",
        "{number} {keyword} Ideas to Try in {year}",
    ),
    "comparison": (
        "{keyword} vs Alternatives: Which Is Best?",
        "{keyword} Comparison: Find the Best Option",
        "Compare {keyword} Options in {year}",
        "Best {keyword} Options Compared",
    ),
    "problem_solution": (
        "{keyword} Problems and How to Solve Them",
        "Fix {keyword} Issues with These Solutions",
        "Common {keyword} Mistakes to Avoid",
        "Troubleshooting {keyword}: Expert Solutions",
    ),
    "benefits": (
        "Why {keyword} Matters in {year}",
        "Benefits of {keyword} for {audience}",
        "{keyword}: Key Benefits for {audience}",
        "The Power of {keyword}: Key Benefits",
    ),
    "beginner": (
        "{keyword} for Beginners: Start Here",
        "{keyword} Basics: What You Need to Know",
        "Intro to {keyword}: A Beginner's Guide",
        "Start with {keyword}: First Steps",
    ),
}

# Words a title of the given type must contain (any of them)
CONTENT_TYPE_MARKERS: dict[str, tuple[str, ...]] = {
    "how_to": ("how", "guide", "step"),
    "comparison": ("vs", "compare", "compared", "comparison", "best"),
}

CONTENT_ANGLES: dict[str, str] = {
    "how_to": "Step-by-step instructional approach",
    "listicle": "List-based informational format",
    "comparison": "Comparative analysis approach",
    "benefits": "Value-focused persuasive angle",
    "problem_solution": "Problem-solving methodology",
    "beginner": "Introductory educational approach",
}

FOCUS_POINTS: dict[str, tuple[str, ...]] = {
    "how_to": ("Implementation steps", "Best practices", "Common mistakes", "Tools needed"),
    "listicle": ("Key strategies", "Practical tips", "Expert recommendations", "Action items"),
    "comparison": ("Feature analysis", "Pros and cons", "Use cases", "Recommendations"),
    "benefits": ("Key advantages", "ROI impact", "Success stories", "Value proposition"),
    "problem_solution": ("Common issues", "Root causes", "Solution methods", "Prevention tips"),
    "beginner": ("Basic concepts", "Getting started", "Essential knowledge", "First steps"),
}

DEFAULT_AUDIENCES: dict[str, str] = {
    "how_to": "Practitioners",
    "listicle": "Professionals",
    "comparison": "Decision Makers",
    "benefits": "Business Owners",
    "problem_solution": "Problem Solvers",
    "beginner": "Newcomers",
}

VARIATION_NUMBERS = (5, 7, 10, 15, 20, 12, 8, 25, 30, 50)
VARIATION_MODIFIERS = (
    "Expert Tips", "Pro Strategies", "Proven Methods", "Key Insights",
    "Practical Advice", "Smart Ideas",
)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})
# Articles and intensifiers; dropping them never breaks a template phrase
FILLER_WORDS = frozenset({"the", "a", "an", "very", "really", "quite", "rather", "pretty"})
# Words a title must not end on
DANGLING_WORDS = STOP_WORDS | {
    "how", "why", "what", "when", "where", "which", "vs", "is", "are", "that",
    "these", "your", "from", "into",
}
PHRASE_SHORTENINGS = (
    ("Step-by-Step Guide", "Guide"),
    ("Complete Guide", "Guide"),
    ("Ultimate Guide", "Guide"),
    ("Everything You Need to Know", "Essentials"),
    ("What You Need to Know", "Essentials"),
    ("A Beginner's Guide", "Beginner Guide"),
    ("for Beginners", "Basics"),
    ("Tips and Tricks", "Tips"),
    ("Best Practices", "Best Tips"),
)


def _normalize(title: str) -> list[str]:
    text = re.sub(r"[^\w\s]", " ", (title or "").lower())
    return [w for w in text.split() if w not in STOP_WORDS]


def title_case(phrase: str, leading: bool = True) -> str:
    """
    Capitalize the words of a phrase for use inside a title.

    Short connecting words stay lowercase unless they open the title
    (``leading``); words that already carry capitals ("SEO", "iPhone") are
    left as written.
    """
    words = []
    for index, word in enumerate(phrase.split()):
        if word != word.lower():
            words.append(word)
        elif word in STOP_WORDS and (index > 0 or not leading):
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:])
    return " ".join(words)


def _last_word(title: str) -> str:
    words = re.findall(r"[\w']+", title)
    return words[-1].lower() if words else ""


def _ends_dangling(title: str, focus_keyword: str = "") -> bool:
    if focus_keyword and title.lower().rstrip(" :-,?!.").endswith(focus_keyword.lower()):
        return False
    return _last_word(title) in DANGLING_WORDS


def _jaccard(a: set, b: set) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def _bigrams(tokens: Sequence[str]) -> set:
    return {(tokens[i], tokens[i + 1]) for i in range(len(tokens) - 1)}


class TitleRegistry:
    """In-memory store of titles already in use."""

    def __init__(self, titles: Optional[Iterable[str]] = None):
        self._titles: list[str] = [t for t in (titles or []) if t]

    def add(self, title: str) -> None:
        if title and title not in self._titles:
            self._titles.append(title)

    def remove(self, title: str) -> None:
        if title in self._titles:
            self._titles.remove(title)

    def titles(self) -> list[str]:
        return list(self._titles)

    def __contains__(self, title: str) -> bool:
        return title in self._titles

    def __len__(self) -> int:
        return len(self._titles)


@dataclass
class UniquenessResult:
    """Outcome of a uniqueness check."""
    is_unique: bool
    exact_match: bool = False
    most_similar: Optional[str] = None
    similarity: float = 0.0
    similar_titles: list[tuple[str, float]] = field(default_factory=list)


class TitleUniquenessValidator:
    """
    Compares a title against the registry using exact and fuzzy matching.

    Similarity blends edit-distance ratio (30%), word Jaccard (40%) and
    word-bigram Jaccard (30%) over normalized titles.
    """

    def __init__(
        self,
        registry: Optional[TitleRegistry] = None,
        similarity_threshold: float = 0.85,
        max_length: int = 66,
    ):
        self.registry = registry if registry is not None else TitleRegistry()
        self.similarity_threshold = similarity_threshold
        self.max_length = max_length

    def similarity(self, first: str, second: str) -> float:
        a, b = _normalize(first), _normalize(second)
        edit = SequenceMatcher(None, " ".join(a), " ".join(b)).ratio()
        words = _jaccard(set(a), set(b))
        bigrams = _jaccard(_bigrams(a), _bigrams(b))
        return round(0.3 * edit + 0.4 * words + 0.3 * bigrams, 4)

    def validate_title_uniqueness(
        self,
        title: str,
        extra_titles: Iterable[str] = (),
        exclude: Optional[str] = None,
    ) -> UniquenessResult:
        """
        Check a title against the registry plus any extra titles.

        Args:
            title: Candidate title.
            extra_titles: Titles from the current batch not yet registered.
            exclude: A registered title to ignore (the one being replaced).
        """
        existing = [t for t in [*self.registry.titles(), *extra_titles] if t and t != exclude]
        lowered = title.strip().lower()
        for other in existing:
            if other.strip().lower() == lowered:
                return UniquenessResult(False, True, other, 1.0, [(other, 1.0)])

        similar = []
        best_title, best_score = None, 0.0
        for other in existing:
            score = self.similarity(title, other)
            if score > best_score:
                best_title, best_score = other, score
            if score >= self.similarity_threshold:
                similar.append((other, score))

        similar.sort(key=lambda item: item[1], reverse=True)
        return UniquenessResult(not similar, False, best_title, best_score, similar)

    def validate_title_requirements(
        self,
        title: str,
        focus_keyword: str,
        content_type: Optional[str] = None,
    ) -> list[str]:
        """
        List the requirements a title violates.

        Returns:
            Empty list when the title is acceptable.
        """
        problems = []
        if not title or not title.strip():
            return ["missing"]
        if len(title) > self.max_length:
            problems.append(f"too_long ({len(title)} > {self.max_length})")

        position = title.lower().find(focus_keyword.lower()) if focus_keyword else 0
        if position == -1:
            problems.append("missing_keyword")
        elif position > len(title) / 2:
            problems.append("keyword_not_in_first_half")
        if _ends_dangling(title, focus_keyword):
            problems.append("dangling_word")

        lowered = title.lower()
        markers = CONTENT_TYPE_MARKERS.get(content_type or "")
        if markers and not any(re.search(rf"\b{m}", lowered) for m in markers):
            problems.append(f"missing_{content_type}_marker")
        if content_type == "listicle" and not re.search(r"\d", title):
            problems.append("missing_number")
        return problems


@dataclass
class TitleResult:
    """Outcome of generate_optimized_title()."""
    title: Optional[str]
    success: bool
    attempts: int
    character_count: int = 0
    all_attempts: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ContentVariation:
    """A distinct article direction for the same keyword."""
    content_type: str
    title: str
    angle: str
    focus_points: list[str]
    target_audience: str
    success: bool = True


class TitleOptimizationEngine:
    """Generates keyword-led titles that are short and unique."""

    def __init__(
        self,
        validator: Optional[TitleUniquenessValidator] = None,
        max_length: int = 66,
    ):
        self.validator = validator or TitleUniquenessValidator(max_length=max_length)
        self.max_length = max_length
        self.validator.max_length = max_length

    @property
    def registry(self) -> TitleRegistry:
        return self.validator.registry

    def create_title_variation(
        self,
        focus_keyword: str,
        content_type: str,
        attempt: int,
        target_audience: str = "",
        year: Optional[int] = None,
    ) -> str:
        """Fill the template for a given attempt number."""
        templates = TITLE_TEMPLATES.get(content_type, TITLE_TEMPLATES["how_to"])
        template = templates[attempt % len(templates)]
        number = VARIATION_NUMBERS[attempt % len(VARIATION_NUMBERS)]
        keyword = title_case(focus_keyword.strip(), leading=template.startswith("{keyword}"))

        title = template.format(
            keyword=keyword,
            number=number,
            audience=target_audience or "Everyone",
            year=year or date.today().year,
        )
        # Templates are exhausted: tag the title so later rounds differ
        if attempt >= len(templates):
            modifier = VARIATION_MODIFIERS[(attempt - len(templates)) % len(VARIATION_MODIFIERS)]
            title = f"{title} - {modifier}"
        return title

    def optimize_title_length(self, title: str, focus_keyword: str) -> str:
        """
        Shorten a title to the length limit while keeping the keyword.

        Tries phrase shortenings, then drops articles and intensifiers
        outside the keyword, then cuts at a word boundary and removes any
        connecting words left dangling at the end.
        """
        return self._shorten(title, focus_keyword)[0]

    def _shorten(self, title: str, focus_keyword: str) -> tuple[str, bool]:
        """Shortened title, and whether words had to be cut off the end."""
        if len(title) <= self.max_length:
            return title, False

        for long_form, short_form in PHRASE_SHORTENINGS:
            title = re.sub(re.escape(long_form), short_form, title, flags=re.IGNORECASE)
            if len(title) <= self.max_length:
                return title, False

        title = re.sub(r"\s+-\s+[^-]+$", "", title)
        if len(title) <= self.max_length:
            return title, False

        keyword_words = {w.lower() for w in focus_keyword.split()}
        kept = [
            w for i, w in enumerate(title.split())
            if i == 0 or w.lower() in keyword_words or w.lower() not in FILLER_WORDS
        ]
        title = " ".join(kept)
        if len(title) <= self.max_length:
            return title, False

        cut = title[: self.max_length + 1]
        words = cut[: cut.rfind(" ")].split() if " " in cut else [cut[: self.max_length]]
        keyword = focus_keyword.lower()
        while len(words) > 1 and _ends_dangling(" ".join(words), focus_keyword):
            shorter = " ".join(words[:-1])
            if keyword and keyword not in shorter.lower():
                break
            words.pop()
        return " ".join(words).rstrip(" :-,"), True

    def generate_optimized_title(
        self,
        focus_keyword: str,
        content_type: str = "how_to",
        target_audience: str = "",
        max_attempts: int = 10,
        year: Optional[int] = None,
        extra_titles: Iterable[str] = (),
        register: bool = True,
    ) -> TitleResult:
        """
        Generate a title that satisfies length, keyword placement, content
        type pattern and uniqueness.

        Args:
            focus_keyword: Keyword the title must lead with.
            content_type: One of the TITLE_TEMPLATES keys.
            target_audience: Fills the {audience} slot.
            max_attempts: Upper bound on candidates tried.
            year: Fills the {year} slot (defaults to the current year).
            extra_titles: Batch titles to stay distinct from.
            register: Add the accepted title to the registry.

        Returns:
            TitleResult; ``title`` is None only when no keyword was given.
        """
        if not focus_keyword or not focus_keyword.strip():
            return TitleResult(None, False, 0, error="Focus keyword is required for title generation")

        extra_titles = list(extra_titles)
        all_attempts: list[dict[str, Any]] = []
        fallback_title: Optional[str] = None
        cut_title: Optional[str] = None

        for attempt in range(max(1, max_attempts)):
            candidate = self.create_title_variation(
                focus_keyword, content_type, attempt, target_audience, year
            )
            candidate, truncated = self._shorten(candidate, focus_keyword)
            problems = self.validator.validate_title_requirements(candidate, focus_keyword, content_type)
            uniqueness = self.validator.validate_title_uniqueness(candidate, extra_titles)

            all_attempts.append({
                "attempt": attempt + 1,
                "title": candidate,
                "problems": problems,
                "is_unique": uniqueness.is_unique,
                "similarity": uniqueness.similarity,
                "truncated": truncated,
            })

            if not problems and fallback_title is None:
                fallback_title = candidate
            if not problems and uniqueness.is_unique:
                if truncated:
                    # Truncated candidates are a last resort
                    cut_title = cut_title or candidate
                    continue
                return self._accept(candidate, all_attempts, register)

        if cut_title is not None:
            return self._accept(cut_title, all_attempts, register)

        logger.warning(f"No unique title for {focus_keyword!r} after {len(all_attempts)} attempts")
        title = fallback_title or all_attempts[-1]["title"]
        return TitleResult(
            title, False, len(all_attempts), len(title), all_attempts,
            error=f"Could not generate unique title after {len(all_attempts)} attempts",
        )

    def _accept(self, title: str, all_attempts: list[dict[str, Any]], register: bool) -> TitleResult:
        if register:
            self.registry.add(title)
        logger.info(f"Generated title after {len(all_attempts)} attempts: {title!r}")
        return TitleResult(title, True, len(all_attempts), len(title), all_attempts)

    def generate_content_variations(
        self,
        focus_keyword: str,
        count: int = 3,
        content_types: Optional[Sequence[str]] = None,
        target_audience: str = "",
        year: Optional[int] = None,
        max_attempts: int = 10,
    ) -> list[ContentVariation]:
        """
        Produce distinct article directions for one keyword.

        Each variation uses a different content type, so angles never
        repeat; titles are checked against the registry and each other.
        The number of variations is capped by the number of content types.
        """
        types = list(dict.fromkeys(content_types or TITLE_TEMPLATES.keys()))
        types = [t for t in types if t in TITLE_TEMPLATES][: max(0, count)]

        variations: list[ContentVariation] = []
        batch_titles: list[str] = []
        for content_type in types:
            audience = target_audience or DEFAULT_AUDIENCES[content_type]
            result = self.generate_optimized_title(
                focus_keyword,
                content_type=content_type,
                target_audience=audience,
                max_attempts=max_attempts,
                year=year,
                extra_titles=batch_titles,
            )
            if result.title is None:
                break
            batch_titles.append(result.title)
            variations.append(ContentVariation(
                content_type=content_type,
                title=result.title,
                angle=CONTENT_ANGLES[content_type],
                focus_points=list(FOCUS_POINTS[content_type]),
                target_audience=audience,
                success=result.success,
            ))

        logger.info(f"Generated {len(variations)} content variations for {focus_keyword!r}")
        return variations
