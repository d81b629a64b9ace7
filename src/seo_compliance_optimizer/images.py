"""
Image prompts, alt text and the in-body image corrector.

Prompts are composed from a small visual vocabulary (style, composition,
lighting, background) chosen deterministically from the keyword, so the
same inputs always yield the same prompt. Alt text is always kept within
the configured length range, mentions the keyword or a synonym and never
announces itself as an image.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .text_utils import clean_text, contains_any, keyword_terms, truncate_at_word, words

logger = logging.getLogger(__name__)


IMAGE_STYLES = (
    "professional", "modern", "clean", "minimalist",
    "vibrant", "corporate", "creative", "technical",
)
COMPOSITIONS = (
    "close-up", "wide shot", "overhead view", "side angle",
    "front view", "diagonal composition", "centered composition",
)
LIGHTING = (
    "natural lighting", "soft lighting", "bright lighting",
    "studio lighting", "warm lighting", "professional lighting",
)
BACKGROUNDS = (
    "white background", "neutral background", "blurred background",
    "office environment", "natural setting", "clean workspace",
)
QUALITY_DESCRIPTOR = "high quality, detailed, professional photography"

# (trigger words, subject, preferred styles)
SUBJECT_RULES = (
    (("software", "app", "technology", "digital", "computer", "coding", "programming",
      "website", "online", "internet", "tech", "ai", "machine learning", "data"),
     "person working on a laptop with a modern technology setup",
     ("modern", "clean", "technical")),
    (("business", "marketing", "strategy", "management", "corporate", "professional",
      "team", "meeting", "office", "work", "productivity", "success"),
     "professional business environment with people collaborating",
     ("professional", "corporate", "clean")),
    (("health", "wellness", "fitness", "medical", "healthcare", "nutrition",
      "exercise", "mental health", "wellbeing", "lifestyle"),
     "healthy lifestyle scene with wellness elements",
     ("clean", "vibrant", "modern")),
    (("education", "learning", "training", "course", "study", "student",
      "teacher", "school", "university", "knowledge", "skill"),
     "educational setting with learning materials and engaged people",
     ("professional", "clean", "creative")),
    (("finance", "money", "investment", "banking", "financial", "budget",
      "savings", "economy", "market", "trading", "cryptocurrency"),
     "financial planning scene with charts and analysis",
     ("professional", "corporate", "minimalist")),
)
DEFAULT_SUBJECT = "a professional scene"

ALT_TEMPLATES = (
    "{style} photograph showing {subject}",
    "{style} visual depicting {subject}",
    "{composition} of {subject} in a {style} style",
    "{subject} captured with {lighting}",
)

# Phrases screen readers make redundant; never allowed in alt text
BANNED_ALT_PHRASES = (
    "image of", "picture of", "photo of", "graphic of", "illustration of",
    "click here", "see image", "view picture", "look at",
    "this image", "this picture", "this photo",
)
GENERIC_WORDS = (
    "image", "picture", "photo", "graphic", "illustration",
    "content", "item", "thing", "stuff", "element",
)
DESCRIPTIVE_WORDS = (
    "professional", "modern", "clean", "detailed", "clear",
    "bright", "focused", "organized", "structured", "quality",
)
NATURAL_CONNECTORS = ("with", "in", "on", "at", "showing", "featuring", "displaying")
ALT_EXPANSIONS = (
    " in a professional setting",
    " with clear details",
    " showing quality presentation",
    " in a modern environment",
)
REMOVABLE_MODIFIERS = (
    r",?\s+with\s+[^,]*quality[^,]*",
    r",?\s+in\s+[^,]*environment[^,]*",
    r",?\s+showing\s+[^,]*presentation[^,]*",
    r",?\s+in\s+a\s+[^,]*setting[^,]*",
)

ALT_STRUCTURES = ("descriptive_action", "contextual_scene", "focused_detail", "environmental")
ACTION_WORDS = ("working", "collaborating", "analyzing", "discussing", "presenting")
CONTEXT_WORDS = ("in a", "within a", "surrounded by", "positioned in")
QUALITY_WORDS = ("clear", "detailed", "professional", "well-lit", "focused")
VISUAL_WORDS = ("showing", "displaying", "featuring", "depicting", "illustrating")

MAX_PROMPT_LENGTH = 500

_IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_ALT_ATTR_RE = re.compile(r"""\salt\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)
_BANNED_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in BANNED_ALT_PHRASES) + r")\b", re.IGNORECASE
)


def _seed(text: str) -> int:
    return sum(map(ord, (text or "").lower()))


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def _shortest_term(terms: Sequence[str]) -> str:
    return min(terms, key=len) if terms else ""


def has_banned_phrase(alt_text: str) -> bool:
    return _BANNED_RE.search(alt_text or "") is not None


def alt_text_problems(
    alt_text: Optional[str],
    terms: Sequence[str],
    min_length: int = 10,
    max_length: int = 125,
) -> list[str]:
    """
    List what is wrong with an alt text.

    Returns:
        Empty list when the alt text is within range, mentions one of the
        terms and contains no banned phrase.
    """
    text = (alt_text or "").strip()
    if not text:
        return ["missing"]
    problems = []
    if len(text) < min_length:
        problems.append(f"too_short ({len(text)} < {min_length})")
    elif len(text) > max_length:
        problems.append(f"too_long ({len(text)} > {max_length})")
    if terms and not contains_any(text, terms):
        problems.append("missing_keyword")
    if has_banned_phrase(text):
        problems.append("redundant_phrase")
    return problems


def fit_alt_text(text: str, terms: Sequence[str], min_length: int, max_length: int) -> str:
    """
    Bring an alt text into [min_length, max_length] with a term present.

    Keyword placement wins over description: when trimming would cut the
    term off, the term is moved to the front before cutting.
    """
    term = _shortest_term(terms)
    text = _BANNED_RE.sub("", clean_text(text))
    text = re.sub(r"\s+", " ", text).strip(" ,;:-")

    if terms and not contains_any(text, terms):
        text = f"{text}, featuring {term}" if text else term

    if len(text) > max_length:
        for pattern in REMOVABLE_MODIFIERS:
            trimmed = re.sub(pattern, "", text, flags=re.IGNORECASE).strip()
            if len(trimmed) <= max_length and (not terms or contains_any(trimmed, terms)):
                text = trimmed
                break
    if len(text) > max_length:
        cut = truncate_at_word(text, max_length)
        if terms and not contains_any(cut, terms):
            cut = truncate_at_word(f"{term} {text}", max_length)
        text = cut

    for expansion in ALT_EXPANSIONS:
        if len(text) >= min_length:
            break
        if len(text + expansion) <= max_length:
            text += expansion
    return text[:1].upper() + text[1:]


@dataclass
class ImageContext:
    """Visual choices behind one prompt."""
    subject: str
    style: str
    composition: str
    lighting: str
    background: str
    topic: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "subject": self.subject,
            "style": self.style,
            "composition": self.composition,
            "lighting": self.lighting,
            "background": self.background,
            "topic": self.topic,
        }


@dataclass
class ImagePrompt:
    """Generated prompt plus the alt text for the resulting image."""
    prompt: str
    alt_text: str
    context: ImageContext
    focus_keyword: str
    secondary_keywords: list[str] = field(default_factory=list)
    variation_index: int = 0

    @property
    def metadata(self) -> dict[str, str]:
        return {
            "topic": self.context.topic,
            "style": self.context.style,
            "composition": self.context.composition,
            "lighting": self.context.lighting,
            "background": self.context.background,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt,
            "alt_text": self.alt_text,
            "context": self.context.to_dict(),
            "focus_keyword": self.focus_keyword,
            "secondary_keywords": list(self.secondary_keywords),
            "variation_index": self.variation_index,
            "metadata": self.metadata,
        }


class ImagePromptGenerator:
    """Builds image-generation prompts and matching alt text."""

    def __init__(self, min_alt_length: int = 10, max_alt_length: int = 125):
        self.min_alt_length = min_alt_length
        self.max_alt_length = max_alt_length

    @classmethod
    def from_rules(cls, rules: dict[str, float]) -> "ImagePromptGenerator":
        return cls(int(rules.get("min_alt_text_length", 10)), int(rules.get("max_alt_text_length", 125)))

    def determine_context(
        self,
        topic: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        variation: int = 0,
    ) -> ImageContext:
        haystack = " ".join([topic or "", *keyword_terms(keyword, synonyms)])
        subject, preferred = DEFAULT_SUBJECT, ("professional",)
        for triggers, rule_subject, styles in SUBJECT_RULES:
            if any(_has_word(haystack, t) for t in triggers):
                subject, preferred = rule_subject, styles
                break

        seed = _seed(keyword)
        if variation == 0:
            style = preferred[seed % len(preferred)]
        else:
            # Variants walk the full style list so each one looks different
            start = IMAGE_STYLES.index(preferred[seed % len(preferred)])
            style = IMAGE_STYLES[(start + variation) % len(IMAGE_STYLES)]

        return ImageContext(
            subject=subject,
            style=style,
            composition=COMPOSITIONS[(seed + variation) % len(COMPOSITIONS)],
            lighting=LIGHTING[(seed + variation) % len(LIGHTING)],
            background=BACKGROUNDS[(seed + variation) % len(BACKGROUNDS)],
            topic=clean_text(topic),
        )

    def build_prompt(self, context: ImageContext, keyword: str) -> str:
        """Compose the prompt, dropping scene details first if it runs long."""
        base = f"A {context.style} image showing {context.subject}"
        if keyword:
            base += f" related to {keyword}"
        details = [context.composition, context.lighting, context.background]
        while True:
            prompt = ", ".join([base, *details, QUALITY_DESCRIPTOR])
            if len(prompt) <= MAX_PROMPT_LENGTH or not details:
                break
            details.pop()
        if len(prompt) > MAX_PROMPT_LENGTH:
            prompt = truncate_at_word(base, MAX_PROMPT_LENGTH - len(QUALITY_DESCRIPTOR) - 2)
            prompt = f"{prompt}, {QUALITY_DESCRIPTOR}"
        return prompt

    def generate_alt_text(
        self,
        context: ImageContext,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        variation: int = 0,
    ) -> str:
        terms = keyword_terms(keyword, synonyms)
        template = ALT_TEMPLATES[variation % len(ALT_TEMPLATES)]
        description = template.format(
            style=context.style,
            subject=context.subject,
            composition=context.composition,
            lighting=context.lighting,
        )
        term = _shortest_term(terms)
        if term and not contains_any(description, terms):
            description += f" related to {term}"
        return fit_alt_text(description, terms, self.min_alt_length, self.max_alt_length)

    def generate_image_prompt(
        self,
        topic: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> ImagePrompt:
        """
        Generate a prompt and alt text for one image.

        Args:
            topic: Article topic or title.
            keyword: Focus keyword.
            synonyms: Secondary keywords.

        Returns:
            ImagePrompt whose prompt carries the keyword and a quality
            descriptor and whose alt text is within the length range.
        """
        context = self.determine_context(topic, keyword, synonyms)
        return ImagePrompt(
            prompt=self.build_prompt(context, keyword),
            alt_text=self.generate_alt_text(context, keyword, synonyms),
            context=context,
            focus_keyword=keyword,
            secondary_keywords=list(synonyms or []),
        )

    def generate_varied_image_prompts(
        self,
        topic: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        count: int = 3,
    ) -> list[ImagePrompt]:
        """Generate ``count`` prompts with distinct visuals and alt texts."""
        prompts: list[ImagePrompt] = []
        seen_prompts: set[str] = set()
        seen_alts: set[str] = set()
        variation = 0
        # Each variation index yields a new style/composition/lighting tuple
        while len(prompts) < count and variation < count * len(IMAGE_STYLES):
            context = self.determine_context(topic, keyword, synonyms, variation)
            prompt = self.build_prompt(context, keyword)
            alt_text = ""
            for offset in range(len(ALT_TEMPLATES)):
                candidate = self.generate_alt_text(context, keyword, synonyms, variation + offset)
                if candidate.lower() not in seen_alts:
                    alt_text = candidate
                    break
            if alt_text and prompt not in seen_prompts:
                seen_prompts.add(prompt)
                seen_alts.add(alt_text.lower())
                prompts.append(ImagePrompt(
                    prompt, alt_text, context, keyword, list(synonyms or []), len(prompts)
                ))
            variation += 1
        return prompts

    def validate_prompt_data(self, data: ImagePrompt) -> list[str]:
        problems = []
        if not data.prompt or len(data.prompt) > MAX_PROMPT_LENGTH:
            problems.append("prompt_length")
        if data.focus_keyword and data.focus_keyword.lower() not in data.prompt.lower():
            problems.append("prompt_missing_keyword")
        terms = keyword_terms(data.focus_keyword, data.secondary_keywords)
        problems.extend(
            f"alt_{p}" for p in alt_text_problems(data.alt_text, terms, self.min_alt_length, self.max_alt_length)
        )
        return problems


@dataclass
class AltTextOptimization:
    """Result of optimize_alt_text()."""
    optimized_text: str
    original_text: str
    accessibility_score: int
    has_keyword: bool
    improvements_made: list[str] = field(default_factory=list)
    structure_type: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.optimized_text)

    @property
    def screen_reader_friendly(self) -> bool:
        return self.accessibility_score >= 80

    def to_dict(self) -> dict[str, Any]:
        return {
            "optimized_text": self.optimized_text,
            "original_text": self.original_text,
            "accessibility_score": self.accessibility_score,
            "length": self.length,
            "has_keyword": self.has_keyword,
            "screen_reader_friendly": self.screen_reader_friendly,
            "improvements_made": list(self.improvements_made),
            "structure_type": self.structure_type,
        }


@dataclass
class AccessibilityReport:
    """Result of validate_accessibility()."""
    is_accessible: bool
    accessibility_score: int
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    length: int = 0


class AltTextAccessibilityOptimizer:
    """
    Scores and rewrites alt text for screen-reader users.

    The score starts at 100 and moves with length, redundant phrases,
    generic wording, keyword stuffing and the presence of natural,
    descriptive language. Rewritten text lands in the meaningful range
    (15-100 characters by default).
    """

    def __init__(self, min_length: int = 15, max_length: int = 100):
        if min_length >= max_length:
            raise ValueError("min_length must be smaller than max_length")
        self.min_length = min_length
        self.max_length = max_length

    def is_generic(self, alt_text: str) -> bool:
        count = len(words(alt_text))
        if count < 4:
            return True
        return count < 6 and any(_has_word(alt_text, w) for w in GENERIC_WORDS)

    def has_sentence_structure(self, alt_text: str) -> bool:
        subject = re.search(r"\b(person|people|man|woman|individual|professional|team|group)\b", alt_text, re.I)
        action = re.search(r"\b(working|showing|displaying|featuring|using|holding|presenting)\b", alt_text, re.I)
        return bool(subject or action) or len(words(alt_text)) >= 5

    def has_keyword_stuffing(self, alt_text: str) -> bool:
        tokens = [w.lower() for w in words(alt_text)]
        if len(tokens) < 5:
            return False
        for token in set(tokens):
            repeats = tokens.count(token)
            if repeats > 3 or (repeats > 2 and len(tokens) < 15):
                return True
        return False

    def uses_natural_language(self, alt_text: str) -> bool:
        return any(_has_word(alt_text, c) for c in NATURAL_CONNECTORS)

    def has_descriptive_details(self, alt_text: str) -> bool:
        return any(_has_word(alt_text, w) for w in DESCRIPTIVE_WORDS) or len(words(alt_text)) >= 8

    def accessibility_score(self, alt_text: str) -> int:
        """Score an alt text from 0 to 100."""
        score = 100
        if len(alt_text) < self.min_length:
            score -= 30
        elif len(alt_text) > self.max_length:
            score -= 15
        score -= 20 * len(_BANNED_RE.findall(alt_text))
        if self.is_generic(alt_text):
            score -= 25
        if self.has_sentence_structure(alt_text):
            score += 10
        if self.has_keyword_stuffing(alt_text):
            score -= 30
        if self.uses_natural_language(alt_text):
            score += 15
        if self.has_descriptive_details(alt_text):
            score += 10
        return max(0, min(100, score))

    def optimize_alt_text(
        self,
        alt_text: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
    ) -> AltTextOptimization:
        """
        Rewrite an alt text for accessibility while keeping a keyword in it.

        Raises:
            ValueError: If the alt text is empty.
        """
        if not alt_text or not alt_text.strip():
            raise ValueError("Alt text cannot be empty")

        terms = keyword_terms(keyword, synonyms)
        improvements = []
        text = clean_text(alt_text)

        if has_banned_phrase(text):
            improvements.append("removed_redundant_phrases")
        if self.is_generic(_BANNED_RE.sub("", text)):
            text = f"{_BANNED_RE.sub('', text).strip()} in a clear, professional setting"
            improvements.append("added_description")
        if terms and not contains_any(text, terms):
            improvements.append("integrated_keyword")

        optimized = fit_alt_text(text, terms, self.min_length, self.max_length)
        if len(optimized) != len(text):
            improvements.append("adjusted_length")

        return AltTextOptimization(
            optimized_text=optimized,
            original_text=alt_text,
            accessibility_score=self.accessibility_score(optimized),
            has_keyword=contains_any(optimized, terms) if terms else True,
            improvements_made=improvements,
        )

    def validate_accessibility(self, alt_text: str) -> AccessibilityReport:
        text = alt_text or ""
        report = AccessibilityReport(True, self.accessibility_score(text), length=len(text))
        if len(text) < self.min_length:
            report.issues.append(f"Alt text is too short ({len(text)} characters)")
        if len(text) > self.max_length:
            report.warnings.append(f"Alt text is long ({len(text)} characters)")
        for phrase in _BANNED_RE.findall(text):
            report.issues.append(f"Contains redundant phrase {phrase!r}")
            report.suggestions.append(f"Remove {phrase!r}; screen readers already announce images")
        if self.is_generic(text):
            report.warnings.append("Alt text appears generic")
        if not self.has_sentence_structure(text):
            report.suggestions.append("Use a clear descriptive phrase")
        if self.has_keyword_stuffing(text):
            report.issues.append("Potential keyword stuffing detected")
        report.is_accessible = not report.issues
        return report

    def _build_structure(self, structure: str, keyword: str, index: int) -> str:
        if structure == "descriptive_action":
            return f"Person {ACTION_WORDS[index % len(ACTION_WORDS)]} with {keyword} in a professional setting"
        if structure == "contextual_scene":
            return f"Professional workspace {CONTEXT_WORDS[index % len(CONTEXT_WORDS)]} modern office, featuring {keyword}"
        if structure == "focused_detail":
            return f"Close-up view of a {QUALITY_WORDS[index % len(QUALITY_WORDS)]} {keyword} setup with professional details"
        return f"Modern office environment {VISUAL_WORDS[index % len(VISUAL_WORDS)]} {keyword} with a clean aesthetic"

    def generate_accessible_variations(
        self,
        base_description: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        count: int = 3,
    ) -> list[AltTextOptimization]:
        """
        Produce up to four alt texts, one per structure type, best first.

        ``base_description`` seeds the word choice so different images get
        different wording.
        """
        term = _shortest_term(keyword_terms(keyword, synonyms)) or "the topic"
        seed = _seed(base_description)
        variations = []
        for index, structure in enumerate(ALT_STRUCTURES[: max(0, count)]):
            draft = self._build_structure(structure, term, seed + index)
            result = self.optimize_alt_text(draft, keyword, synonyms)
            result.structure_type = structure
            variations.append(result)
        # Stable sort keeps structure order among equal scores
        variations.sort(key=lambda v: v.accessibility_score, reverse=True)
        return variations


@dataclass
class ImageCorrection:
    """Result of ImageCorrector.correct()."""
    content: str
    changes_made: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes_made)


class ImageCorrector:
    """Adds a placeholder image when a body has none and repairs bad alt text."""

    def __init__(
        self,
        generator: Optional[ImagePromptGenerator] = None,
        accessibility: Optional[AltTextAccessibilityOptimizer] = None,
        min_alt_length: int = 10,
        max_alt_length: int = 125,
    ):
        self.generator = generator or ImagePromptGenerator(min_alt_length, max_alt_length)
        self.accessibility = accessibility or AltTextAccessibilityOptimizer()
        self.min_alt_length = min_alt_length
        self.max_alt_length = max_alt_length

    @classmethod
    def from_rules(cls, rules: dict[str, float]) -> "ImageCorrector":
        low = int(rules.get("min_alt_text_length", 10))
        high = int(rules.get("max_alt_text_length", 125))
        return cls(ImagePromptGenerator(low, high), None, low, high)

    def placeholder(self, topic: str, keyword: str, synonyms: Optional[Sequence[str]] = None) -> str:
        data = self.generator.generate_image_prompt(topic, keyword, synonyms)
        return (
            f'<img src="" alt="{html.escape(data.alt_text, quote=True)}" '
            f'data-prompt="{html.escape(data.prompt, quote=True)}">'
        )

    def _better_alt(self, current: str, topic: str, keyword: str, synonyms: Optional[Sequence[str]]) -> str:
        terms = keyword_terms(keyword, synonyms)
        if current.strip():
            optimized = self.accessibility.optimize_alt_text(current, keyword, synonyms).optimized_text
            if not alt_text_problems(optimized, terms, self.min_alt_length, self.max_alt_length):
                return optimized
        return self.generator.generate_image_prompt(topic, keyword, synonyms).alt_text

    def correct(
        self,
        body: str,
        keyword: str,
        synonyms: Optional[Sequence[str]] = None,
        topic: str = "",
    ) -> ImageCorrection:
        """
        Fix image issues in a body.

        Args:
            body: HTML body.
            keyword: Focus keyword.
            synonyms: Secondary keywords accepted in alt text.
            topic: Article title, used to pick the image subject.

        Returns:
            ImageCorrection with the rewritten body.
        """
        body = body or ""
        terms = keyword_terms(keyword, synonyms)
        changes: list[str] = []

        if not _IMG_TAG_RE.search(body):
            tag = self.placeholder(topic, keyword, synonyms)
            close = re.search(r"</p\s*>", body, re.IGNORECASE)
            if close:
                body = f"{body[:close.end()]}\n{tag}{body[close.end():]}"
            else:
                body = f"{body}\n{tag}" if body else tag
            changes.append("inserted_placeholder_image")
            return ImageCorrection(body, changes)

        def fix_tag(match: re.Match) -> str:
            tag = match.group(0)
            alt_match = _ALT_ATTR_RE.search(tag)
            current = ""
            if alt_match:
                raw = alt_match.group(0).split("=", 1)[1].strip()
                current = html.unescape(raw.strip("\"'"))
            if not alt_text_problems(current, terms, self.min_alt_length, self.max_alt_length):
                return tag
            new_alt = self._better_alt(current, topic, keyword, synonyms)
            attr = f' alt="{html.escape(new_alt, quote=True)}"'
            changes.append(f"replaced_alt_text: {current!r} -> {new_alt!r}")
            if alt_match:
                return tag[:alt_match.start()] + attr + tag[alt_match.end():]
            return re.sub(r"^<img\b", "<img" + attr, tag, count=1, flags=re.IGNORECASE)

        body = _IMG_TAG_RE.sub(fix_tag, body)
        if changes:
            logger.debug(f"Image corrector made {len(changes)} changes")
        return ImageCorrection(body, changes)
