"""
Text and markup helpers shared by the analyzers and correctors.

Bodies are HTML fragments (``<h2>``, ``<p>``, ``<img alt="...">``) or plain
text. DOM queries (headings, images) go through BeautifulSoup; anything that
has to be rewritten in place goes through the block tokenizer below so the
markup around the edited text survives byte for byte.
"""

import html
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup


# Tags that start or end a block of prose. Inline tags (strong, em, a, span)
# stay inside the text segment they decorate.
BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "br", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "img", "li", "main", "nav", "ol", "p", "section", "table",
    "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
})
PROTECTED_TAGS = frozenset({"script", "style", "pre", "code"})
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

_TAG_RE = re.compile(r"<!--.*?-->|<[^>]+>", re.DOTALL)
_TAG_NAME_RE = re.compile(r"<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9]*)")
_WORD_RE = re.compile(r"[A-Za-z0-9][\w'’-]*")
# Sentence boundary: whitespace after terminal punctuation, or any line break
_SENTENCE_SEP_RE = re.compile(r"((?<=[.!?])\s+|\s*\n\s*)")

MIN_SENTENCE_CHARS = 10


@dataclass
class Segment:
    """A run of markup or text inside a body."""
    value: str
    kind: str  # "tag", "text", "heading" or "protected"

    @property
    def is_prose(self) -> bool:
        return self.kind == "text"


def _tag_name(tag: str) -> tuple[Optional[str], bool]:
    match = _TAG_NAME_RE.match(tag)
    if not match:
        return None, False
    return match.group(2).lower(), bool(match.group(1))


def tokenize_markup(body: str) -> list[Segment]:
    """
    Split a body into tag and text segments.

    Text between block-level tags becomes one segment. Text inside a
    heading is marked "heading", text inside script/style/pre/code is
    marked "protected"; everything else is editable prose.

    Args:
        body: HTML fragment or plain text.

    Returns:
        Segments whose concatenation equals the input.
    """
    segments: list[Segment] = []
    heading_depth = 0
    protected_depth = 0
    buffer: list[str] = []

    def flush() -> None:
        if not buffer:
            return
        text = "".join(buffer)
        buffer.clear()
        if protected_depth:
            kind = "protected"
        elif heading_depth:
            kind = "heading"
        else:
            kind = "text"
        segments.append(Segment(text, kind))

    pos = 0
    for match in _TAG_RE.finditer(body or ""):
        buffer.append(body[pos:match.start()])
        tag = match.group(0)
        name, closing = _tag_name(tag)
        if name in BLOCK_TAGS or name in PROTECTED_TAGS:
            flush()
            segments.append(Segment(tag, "tag"))
            if name in HEADING_TAGS:
                heading_depth = max(0, heading_depth + (-1 if closing else 1))
            elif name in PROTECTED_TAGS:
                protected_depth = max(0, protected_depth + (-1 if closing else 1))
        else:
            # Inline markup travels with the surrounding text
            buffer.append(tag)
        pos = match.end()
    buffer.append((body or "")[pos:])
    flush()

    return [s for s in segments if s.value]


def render_segments(segments: Iterable[Segment]) -> str:
    return "".join(s.value for s in segments)


def clean_text(fragment: str) -> str:
    """Strip inline tags, decode entities and collapse whitespace."""
    text = html.unescape(_TAG_RE.sub("", fragment or ""))
    return re.sub(r"\s+", " ", text).strip()


def split_with_separators(text: str) -> list[str]:
    """
    Split text into alternating [sentence, separator, sentence, ...] parts.

    Joining the result reproduces the input exactly.
    """
    return _SENTENCE_SEP_RE.split(text)


def is_countable_sentence(sentence: str) -> bool:
    """Fragments of ten characters or fewer are ignored by the ratios."""
    return len(clean_text(sentence)) > MIN_SENTENCE_CHARS


def prose_sentences(body: str) -> list[str]:
    """
    Extract countable sentences from the editable prose of a body.

    Headings and protected blocks are skipped.
    """
    sentences = []
    for segment in tokenize_markup(body):
        if not segment.is_prose:
            continue
        parts = split_with_separators(segment.value)
        for part in parts[::2]:
            if is_countable_sentence(part):
                sentences.append(clean_text(part))
    return sentences


def plain_text(body: str) -> str:
    """All visible text of a body (headings included) as one string."""
    blocks = [
        clean_text(s.value)
        for s in tokenize_markup(body)
        if s.kind in ("text", "heading")
    ]
    return " ".join(b for b in blocks if b)


def prose_text(body: str) -> str:
    """Visible text of the editable prose only (headings excluded)."""
    blocks = [clean_text(s.value) for s in tokenize_markup(body) if s.is_prose]
    return " ".join(b for b in blocks if b)


def words(text: str) -> list[str]:
    return _WORD_RE.findall(text or "")


def count_words(text: str) -> int:
    return len(words(text))


def keyword_terms(keyword: str, synonyms: Optional[Sequence[str]] = None) -> list[str]:
    """Focus keyword followed by unique non-empty synonyms, case-insensitively deduplicated."""
    terms: list[str] = []
    seen: set[str] = set()
    for term in [keyword, *(synonyms or [])]:
        term = (term or "").strip()
        if term and term.lower() not in seen:
            seen.add(term.lower())
            terms.append(term)
    return terms


def keyword_pattern(terms: Sequence[str]) -> Optional[re.Pattern]:
    """
    Compile a case-insensitive whole-word alternation of the terms.

    Longer terms are tried first, so a synonym that contains the focus
    keyword is counted once rather than twice.
    """
    cleaned = [t for t in terms if t]
    if not cleaned:
        return None
    ordered = sorted(cleaned, key=len, reverse=True)
    alternation = "|".join(re.escape(t) for t in ordered)
    return re.compile(rf"(?<![\w-])(?:{alternation})(?![\w-])", re.IGNORECASE)


def count_occurrences(text: str, terms: Sequence[str]) -> int:
    pattern = keyword_pattern(terms)
    if pattern is None or not text:
        return 0
    return len(pattern.findall(text))


def contains_any(text: str, terms: Sequence[str]) -> bool:
    """Case-insensitive whole-word check for any of the terms."""
    return count_occurrences(text, terms) > 0


def _soup(body: str) -> BeautifulSoup:
    return BeautifulSoup(body or "", "lxml")


def extract_headings(body: str) -> list[str]:
    """Text of every h1-h6 element in document order."""
    return [h.get_text(" ", strip=True) for h in _soup(body).find_all(list(HEADING_TAGS))]


def extract_images(body: str) -> list[dict[str, Optional[str]]]:
    """
    List the images of a body.

    Returns:
        One dict per <img> with "src" and "alt" (None when the attribute is absent).
    """
    images = []
    for img in _soup(body).find_all("img"):
        images.append({"src": img.get("src"), "alt": img.get("alt")})
    return images


def truncate_at_word(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters without splitting a word."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    space = cut.rfind(" ")
    if space > limit // 2:
        cut = cut[:space]
    return cut.rstrip(" ,;:-")


class SentenceMap:
    """
    Editable view over the countable prose sentences of a body.

    ``sentences`` lists the stripped sentence texts; ``replace`` swaps one
    for new text (which may hold several sentences) while keeping the
    surrounding whitespace and markup. Call ``render`` to get the body back.
    """

    def __init__(self, body: str):
        self.segments = tokenize_markup(body)
        self._parts: dict[int, list[str]] = {}
        self._slots: list[tuple[int, int]] = []
        for seg_index, segment in enumerate(self.segments):
            if not segment.is_prose:
                continue
            parts = split_with_separators(segment.value)
            self._parts[seg_index] = parts
            for part_index in range(0, len(parts), 2):
                if is_countable_sentence(parts[part_index]):
                    self._slots.append((seg_index, part_index))

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def sentences(self) -> list[str]:
        return [self._parts[s][p].strip() for s, p in self._slots]

    def replace(self, index: int, new_text: str) -> None:
        seg_index, part_index = self._slots[index]
        original = self._parts[seg_index][part_index]
        lead = original[:len(original) - len(original.lstrip())]
        trail = original[len(original.rstrip()):]
        self._parts[seg_index][part_index] = f"{lead}{new_text.strip()}{trail}"

    def render(self) -> str:
        for seg_index, parts in self._parts.items():
            self.segments[seg_index].value = "".join(parts)
        return render_segments(self.segments)
