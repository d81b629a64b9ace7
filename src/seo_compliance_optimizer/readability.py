"""
Readability analyzers.

Three independent, reusable analyzers over the prose sentences of a body:
- PassiveVoiceAnalyzer: share of sentences built on auxiliary + past participle
- SentenceLengthAnalyzer: share of sentences longer than the word limit
- TransitionWordAnalyzer: share of sentences using a connective word or phrase

Each accepts either a body (``analyze``) or pre-split sentences
(``analyze_sentences``); the readability corrector uses the latter.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from statistics import median
from typing import Optional, Sequence

from .text_utils import clean_text, count_words, prose_sentences


# Irregular past participles recognised after a passive auxiliary
IRREGULAR_PARTICIPLES = (
    "begun", "bought", "brought", "built", "caught", "chosen", "done", "drawn",
    "driven", "eaten", "fallen", "felt", "forgotten", "found", "given", "gone",
    "grown", "heard", "held", "hidden", "kept", "known", "laid", "led", "left",
    "lost", "made", "meant", "met", "paid", "put", "read", "run", "said", "seen",
    "sent", "set", "shown", "sold", "spent", "spoken", "stolen", "taken",
    "taught", "thought", "thrown", "told", "understood", "won", "worn", "written",
)

# Words ending in -ed that are not participles
NOT_PARTICIPLES = frozenset({
    "bed", "bred", "embed", "exceed", "feed", "indeed", "need", "proceed",
    "red", "seed", "shed", "speed", "succeed", "weed",
})

_PARTICIPLE = r"(\w+ed|" + "|".join(IRREGULAR_PARTICIPLES) + r")"
_ADVERB = r"(?:\w+ly\s+)?"

PASSIVE_PATTERNS = (
    re.compile(rf"\b(?:am|is|are|was|were|being|been)\s+{_ADVERB}{_PARTICIPLE}\b", re.IGNORECASE),
    re.compile(rf"\b(?:have|has|had)\s+been\s+{_ADVERB}{_PARTICIPLE}\b", re.IGNORECASE),
    re.compile(rf"\b(?:will|would|could|should|might|must|can|may)\s+be\s+{_ADVERB}{_PARTICIPLE}\b", re.IGNORECASE),
)

TRANSITION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "addition": (
        "also", "additionally", "furthermore", "moreover", "besides",
        "in addition", "as well as", "along with", "not only", "plus",
    ),
    "contrast": (
        "however", "nevertheless", "nonetheless", "on the other hand",
        "in contrast", "conversely", "although", "though", "despite",
        "while", "whereas", "but", "yet", "still",
    ),
    "cause_effect": (
        "therefore", "consequently", "as a result", "thus", "hence",
        "accordingly", "for this reason", "because of this", "due to",
        "since", "because", "so",
    ),
    "sequence": (
        "first", "second", "third", "next", "then", "after", "before",
        "finally", "lastly", "meanwhile", "subsequently", "previously",
        "initially", "ultimately", "eventually",
    ),
    "example": (
        "for example", "for instance", "such as", "including",
        "specifically", "in particular", "namely", "that is",
        "to illustrate", "as an example",
    ),
    "emphasis": (
        "indeed", "certainly", "obviously", "clearly", "undoubtedly",
        "without doubt", "in fact", "actually", "definitely",
        "absolutely", "particularly", "especially",
    ),
    "summary": (
        "in conclusion", "to conclude", "in summary", "to summarize",
        "overall", "in general", "on the whole", "all in all",
        "to sum up", "in short", "briefly",
    ),
    "comparison": (
        "similarly", "likewise", "in the same way", "equally",
        "compared to", "in comparison", "just as", "like",
        "correspondingly", "by the same token",
    ),
}

_TRANSITION_LOOKUP: dict[str, str] = {
    word: category
    for category, words in TRANSITION_CATEGORIES.items()
    for word in words
}
_TRANSITION_RE = re.compile(
    r"\b(" + "|".join(
        re.escape(w) for w in sorted(_TRANSITION_LOOKUP, key=len, reverse=True)
    ) + r")\b",
    re.IGNORECASE,
)


def _sentences_of(content: str) -> list[str]:
    return prose_sentences(content)


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part / total * 100, 2)


@dataclass
class PassiveVoiceAnalysis:
    """Passive-voice measurements for a set of sentences."""
    total_sentences: int
    passive_sentences: list[str] = field(default_factory=list)
    passive_percentage: float = 0.0
    max_allowed: float = 10.0

    @property
    def passive_count(self) -> int:
        return len(self.passive_sentences)

    @property
    def is_compliant(self) -> bool:
        return self.passive_percentage <= self.max_allowed


class PassiveVoiceAnalyzer:
    """Detects passive constructions (auxiliary + past participle)."""

    def __init__(self, max_passive_percentage: float = 10.0):
        self.max_passive_percentage = max_passive_percentage

    def find_passive(self, sentence: str) -> Optional[re.Match]:
        """Return the first passive construction in a sentence, if any."""
        text = clean_text(sentence)
        for pattern in PASSIVE_PATTERNS:
            for match in pattern.finditer(text):
                if match.group(1).lower() not in NOT_PARTICIPLES:
                    return match
        return None

    def is_passive(self, sentence: str) -> bool:
        return self.find_passive(sentence) is not None

    def analyze_sentences(self, sentences: Sequence[str]) -> PassiveVoiceAnalysis:
        passive = [s for s in sentences if self.is_passive(s)]
        return PassiveVoiceAnalysis(
            total_sentences=len(sentences),
            passive_sentences=passive,
            passive_percentage=_percentage(len(passive), len(sentences)),
            max_allowed=self.max_passive_percentage,
        )

    def analyze(self, content: str) -> PassiveVoiceAnalysis:
        return self.analyze_sentences(_sentences_of(content))

    def is_compliant(self, content: str) -> bool:
        return self.analyze(content).is_compliant


@dataclass
class SentenceLengthAnalysis:
    """Sentence-length measurements for a set of sentences."""
    total_sentences: int
    long_sentences: list[str] = field(default_factory=list)
    long_sentence_percentage: float = 0.0
    average_length: float = 0.0
    median_length: float = 0.0
    distribution: dict[str, float] = field(default_factory=dict)
    max_allowed_percentage: float = 25.0
    max_sentence_length: int = 20

    @property
    def long_count(self) -> int:
        return len(self.long_sentences)

    @property
    def is_compliant(self) -> bool:
        return self.long_sentence_percentage <= self.max_allowed_percentage


class SentenceLengthAnalyzer:
    """
    Measures how many sentences exceed the word limit.

    Sentences are categorised as short (< optimal_min words), optimal
    (optimal_min to optimal_max), acceptable (up to max_sentence_length)
    or long (above it).
    """

    def __init__(
        self,
        max_sentence_length: int = 20,
        max_long_sentence_percentage: float = 25.0,
        optimal_min_length: int = 8,
        optimal_max_length: int = 15,
    ):
        self.max_sentence_length = max_sentence_length
        self.max_long_sentence_percentage = max_long_sentence_percentage
        self.optimal_min_length = optimal_min_length
        self.optimal_max_length = optimal_max_length

    def word_count(self, sentence: str) -> int:
        return count_words(clean_text(sentence))

    def is_long(self, sentence: str) -> bool:
        return self.word_count(sentence) > self.max_sentence_length

    def categorize(self, word_count: int) -> str:
        if word_count < self.optimal_min_length:
            return "short"
        if word_count <= self.optimal_max_length:
            return "optimal"
        if word_count <= self.max_sentence_length:
            return "acceptable"
        return "long"

    def analyze_sentences(self, sentences: Sequence[str]) -> SentenceLengthAnalysis:
        counts = [self.word_count(s) for s in sentences]
        long_sentences = [s for s, c in zip(sentences, counts) if c > self.max_sentence_length]

        distribution: dict[str, float] = Counter(self.categorize(c) for c in counts)
        distribution = {k: distribution.get(k, 0) for k in ("short", "optimal", "acceptable", "long")}
        for key in list(distribution):
            distribution[f"{key}_percentage"] = _percentage(distribution[key], len(counts))

        return SentenceLengthAnalysis(
            total_sentences=len(sentences),
            long_sentences=long_sentences,
            long_sentence_percentage=_percentage(len(long_sentences), len(sentences)),
            average_length=round(sum(counts) / len(counts), 2) if counts else 0.0,
            median_length=float(median(counts)) if counts else 0.0,
            distribution=distribution,
            max_allowed_percentage=self.max_long_sentence_percentage,
            max_sentence_length=self.max_sentence_length,
        )

    def analyze(self, content: str) -> SentenceLengthAnalysis:
        return self.analyze_sentences(_sentences_of(content))

    def is_compliant(self, content: str) -> bool:
        return self.analyze(content).is_compliant

    def update_constraints(
        self,
        max_length: int,
        max_percentage: float,
        optimal_min: Optional[int] = None,
        optimal_max: Optional[int] = None,
    ) -> None:
        self.max_sentence_length = max_length
        self.max_long_sentence_percentage = max_percentage
        if optimal_min is not None:
            self.optimal_min_length = optimal_min
        if optimal_max is not None:
            self.optimal_max_length = optimal_max


@dataclass
class TransitionWordAnalysis:
    """Transition-word measurements for a set of sentences."""
    total_sentences: int
    sentences_with_transitions: int = 0
    transition_percentage: float = 0.0
    category_usage: dict[str, int] = field(default_factory=dict)
    min_required: float = 30.0

    @property
    def is_compliant(self) -> bool:
        # Nothing to connect when there is no prose
        if self.total_sentences == 0:
            return True
        return self.transition_percentage >= self.min_required


class TransitionWordAnalyzer:
    """Counts sentences containing a word from the transition list."""

    def __init__(self, min_transition_percentage: float = 30.0):
        self.min_transition_percentage = min_transition_percentage

    def find_transitions(self, sentence: str) -> list[str]:
        return [m.group(1).lower() for m in _TRANSITION_RE.finditer(clean_text(sentence))]

    def has_transition(self, sentence: str) -> bool:
        return _TRANSITION_RE.search(clean_text(sentence)) is not None

    def analyze_sentences(self, sentences: Sequence[str]) -> TransitionWordAnalysis:
        with_transitions = 0
        usage: Counter = Counter()
        for sentence in sentences:
            found = self.find_transitions(sentence)
            if found:
                with_transitions += 1
                usage.update(_TRANSITION_LOOKUP[w] for w in found)

        return TransitionWordAnalysis(
            total_sentences=len(sentences),
            sentences_with_transitions=with_transitions,
            transition_percentage=_percentage(with_transitions, len(sentences)),
            category_usage=dict(usage),
            min_required=self.min_transition_percentage,
        )

    def analyze(self, content: str) -> TransitionWordAnalysis:
        return self.analyze_sentences(_sentences_of(content))

    def is_compliant(self, content: str) -> bool:
        return self.analyze(content).is_compliant
