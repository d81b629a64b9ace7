"""
Readability corrector.

Rewrites the prose of a body until the three readability metrics are
compliant:
- passive sentences are turned active
- long sentences are split at clause boundaries
- transition words are prepended to plain sentences

A fix is only attempted while its metric is out of range, so running the
corrector over already-compliant text leaves it untouched.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .readability import (
    IRREGULAR_PARTICIPLES,
    PassiveVoiceAnalyzer,
    SentenceLengthAnalyzer,
    TransitionWordAnalyzer,
    NOT_PARTICIPLES,
)
from .text_utils import SentenceMap, clean_text, count_words, plain_text

logger = logging.getLogger(__name__)


# Past tense for irregular participles; regular participles double as past tense
IRREGULAR_PAST = {
    "begun": "began", "bought": "bought", "brought": "brought", "built": "built",
    "caught": "caught", "chosen": "chose", "done": "did", "drawn": "drew",
    "driven": "drove", "eaten": "ate", "fallen": "fell", "felt": "felt",
    "forgotten": "forgot", "found": "found", "given": "gave", "gone": "went",
    "grown": "grew", "heard": "heard", "held": "held", "hidden": "hid",
    "kept": "kept", "known": "knew", "laid": "laid", "led": "led", "left": "left",
    "lost": "lost", "made": "made", "meant": "meant", "met": "met", "paid": "paid",
    "put": "put", "read": "read", "run": "ran", "said": "said", "seen": "saw",
    "sent": "sent", "set": "set", "shown": "showed", "sold": "sold",
    "spent": "spent", "spoken": "spoke", "stolen": "stole", "taken": "took",
    "taught": "taught", "thought": "thought", "thrown": "threw", "told": "told",
    "understood": "understood", "won": "won", "worn": "wore", "written": "wrote",
}

_OBJECT_PRONOUNS = {"i": "me", "he": "him", "she": "her", "we": "us", "they": "them"}
_SUBJECT_PRONOUNS = {obj: subj for subj, obj in _OBJECT_PRONOUNS.items() if subj != "i"}
_SUBJECT_PRONOUNS["me"] = "I"
_PLURAL_SUBJECTS = {"we", "they", "you", "i", "people", "users", "readers", "experts", "teams"}

# First words that are safe to lowercase when they stop starting a sentence
COMMON_STARTERS = frozenset({
    "a", "an", "the", "this", "that", "these", "those", "it", "its", "they",
    "their", "them", "he", "she", "his", "her", "we", "our", "you", "your",
    "my", "many", "most", "some", "all", "each", "every", "any", "no", "one",
    "other", "others", "several", "few", "both", "such", "there", "here",
    "what", "which", "who", "when", "where", "how", "why", "if", "in", "on",
    "at", "for", "with", "by", "from", "to", "as", "of", "after", "before",
    "during", "most", "more", "less", "good", "great", "better", "best",
    "people", "users", "readers", "content", "data", "results", "teams",
    "businesses", "companies", "customers", "small", "large", "new", "modern",
    "regular", "simple", "clear", "strong", "high", "low", "long", "short",
})

_PARTICIPLE = r"(?P<part>\w+ed|" + "|".join(IRREGULAR_PARTICIPLES) + r")"
_PASSIVE_GROUP_RE = re.compile(
    r"\b(?P<aux>(?:will|would|could|should|might|must|can|may)\s+be"
    r"|(?:have|has|had)\s+been"
    r"|(?:am|is|are|was|were)(?:\s+being)?"
    r"|being|been)\s+"
    r"(?:(?P<adv>\w+ly)\s+)?" + _PARTICIPLE + r"\b",
    re.IGNORECASE,
)
_AGENT_STOP_WORDS = (
    "in", "on", "at", "for", "with", "during", "before", "after", "every",
    "each", "when", "while", "because", "to", "from", "last", "next",
    "yesterday", "today", "tomorrow", "since", "until", "through", "across",
    "into", "over", "under", "within", "without",
)
_AGENT_RE = re.compile(
    r"^\s+by\s+(?P<agent>(?:(?!\b(?:" + "|".join(_AGENT_STOP_WORDS) + r")\b)[^,;:.!?])+)",
    re.IGNORECASE,
)

# Clause boundaries, with the text that replaces them when a sentence is split
SPLIT_POINTS = (
    (re.compile(r";\s+"), ""),
    (re.compile(r",\s+but\s+", re.IGNORECASE), "However, "),
    (re.compile(r",\s+however,?\s+", re.IGNORECASE), "However, "),
    (re.compile(r",\s+so\s+", re.IGNORECASE), "Therefore, "),
    (re.compile(r",\s+and\s+", re.IGNORECASE), "Also, "),
    (re.compile(r",\s+which\s+", re.IGNORECASE), "This "),
    (re.compile(r"\s+because\s+", re.IGNORECASE), "This is because "),
    (re.compile(r",\s+although\s+", re.IGNORECASE), "Still, "),
    (re.compile(r",\s+or\s+", re.IGNORECASE), "Alternatively, "),
    (re.compile(r",\s+"), ""),
)

TRANSITION_OPENERS = (
    "Additionally", "Furthermore", "Moreover", "Also", "Indeed", "Similarly",
)

_TAG_SPAN_RE = re.compile(r"<[^>]+>")
_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+\b")
_MIN_PIECE_WORDS = 4


def _first_word(text: str) -> str:
    match = re.match(r"[A-Za-z][\w'-]*", text)
    return match.group(0) if match else ""


def decapitalize(text: str) -> str:
    """Lowercase the first letter when the first word is an ordinary word."""
    word = _first_word(text)
    if word and word.lower() in COMMON_STARTERS and (len(word) == 1 or word[1:].islower()):
        return text[0].lower() + text[1:]
    return text


def capitalize_first(text: str) -> str:
    for index, char in enumerate(text):
        if char == "<":
            # Leading inline tag: leave it alone
            return text
        if char.isalpha():
            return text[:index] + char.upper() + text[index + 1:]
    return text


def _ensure_terminal(text: str) -> str:
    text = text.rstrip().rstrip(",;:").rstrip()
    if not text.endswith((".", "!", "?")):
        text += "."
    return text


def _has_plural_agent(agent: str) -> bool:
    last = agent.split()[-1].lower() if agent.split() else ""
    first = agent.split()[0].lower() if agent.split() else ""
    if first in _PLURAL_SUBJECTS or last in _PLURAL_SUBJECTS:
        return True
    if " and " in f" {agent.lower()} ":
        return True
    return last.endswith("s") and not last.endswith(("ss", "us", "is"))


def _active_verb(aux: str, participle: str, plural: bool, adverb: Optional[str]) -> str:
    """Active-voice verb group matching the tense of a passive auxiliary chain."""
    aux_words = aux.lower().split()
    lead = aux_words[0]
    adv = f"{adverb} " if adverb else ""
    part = participle.lower()

    if lead in ("was", "were"):
        return f"{adv}{IRREGULAR_PAST.get(part, part)}"
    if lead == "had":
        return f"had {adv}{part}"
    if lead in ("will", "would", "could", "should", "might", "must", "can", "may"):
        return f"{lead} {adv}have {part}"
    # am/is/are, has/have been, being, been
    return f"{'have' if plural else 'has'} {adv}{part}"


def _object_form(subject: str, sentence_start: bool = False, proper_nouns: Iterable[str] = ()) -> str:
    """Subject of a passive sentence rewritten to sit after the verb."""
    stripped = subject.strip()
    pronoun = _OBJECT_PRONOUNS.get(stripped.lower())
    if pronoun:
        return pronoun
    word = _first_word(stripped)
    if (
        sentence_start
        and word
        and word != "I"
        and word[0].isupper()
        and (len(word) == 1 or word[1:].islower())
        and word not in proper_nouns
    ):
        return stripped[0].lower() + stripped[1:]
    return decapitalize(stripped)


def mid_sentence_capitals(sentences: Iterable[str]) -> frozenset:
    """Capitalized words used away from the start of a sentence, likely names."""
    found = set()
    for sentence in sentences:
        for match in _CAPITALIZED_RE.finditer(sentence):
            if re.search(r"[A-Za-z]", sentence[:match.start()]):
                found.add(match.group(0))
    return frozenset(found)


def passive_to_active(sentence: str, proper_nouns: Iterable[str] = ()) -> Optional[str]:
    """
    Rewrite the first passive construction of a sentence in active voice.

    "The guide was written by our editors." becomes "Our editors wrote the
    guide."; without a "by" agent the subject becomes "we". A capitalized
    subject is lowercased once it moves behind the verb unless it is one
    of ``proper_nouns`` or is capitalized elsewhere in the sentence.

    Returns:
        The rewritten sentence, or None when no safe rewrite exists.
    """
    if "<" in sentence or "&" in sentence:
        return None
    names = mid_sentence_capitals([sentence]) | frozenset(proper_nouns)

    for match in _PASSIVE_GROUP_RE.finditer(sentence):
        if match.group("part").lower() in NOT_PARTICIPLES:
            continue

        before = sentence[:match.start()].rstrip()
        after = sentence[match.end():]

        prefix = ""
        subject = before
        if "," in before:
            cut = before.rfind(",") + 1
            prefix, subject = before[:cut] + " ", before[cut:].strip()
        if not subject or len(subject.split()) > 8:
            return None

        agent_match = _AGENT_RE.match(after)
        if agent_match:
            agent = agent_match.group("agent").strip()
            rest = after[agent_match.end():].lstrip()
            after = f" {rest}" if rest and rest[0] not in ".,;:!?)" else rest
        else:
            agent = "we"

        verb = _active_verb(
            match.group("aux"),
            match.group("part"),
            _has_plural_agent(agent),
            match.group("adv"),
        )
        agent = _SUBJECT_PRONOUNS.get(agent.lower(), agent)
        actor = capitalize_first(agent) if not prefix else decapitalize(agent)
        obj = _object_form(subject, sentence_start=not prefix, proper_nouns=names)
        rewritten = f"{prefix}{actor} {verb} {obj}{after}"
        return re.sub(r"\s{2,}", " ", rewritten).strip()

    return None


def _boundaries(sentence: str) -> list[tuple[int, int, str]]:
    """Candidate split positions (start, end, replacement opener) outside tags."""
    tag_spans = [(m.start(), m.end()) for m in _TAG_SPAN_RE.finditer(sentence)]

    def inside_tag(pos: int) -> bool:
        return any(start <= pos < end for start, end in tag_spans)

    candidates = []
    for pattern, opener in SPLIT_POINTS:
        for match in pattern.finditer(sentence):
            if not inside_tag(match.start()):
                candidates.append((match.start(), match.end(), opener))
        if candidates:
            # Stronger boundaries win over plain commas
            break

    return candidates


def split_long_sentence(sentence: str, max_words: int = 20) -> Optional[str]:
    """
    Split a long sentence into two at the most balanced clause boundary.

    Falls back to the word boundary nearest the middle when the sentence
    has no usable clause boundary.

    Returns:
        Two sentences joined by a space, or None when the sentence is too
        short to split.
    """
    total = count_words(clean_text(sentence))
    if total < _MIN_PIECE_WORDS * 2:
        return None

    best: Optional[tuple[int, int, str]] = None
    best_balance = None
    for start, end, opener in _boundaries(sentence):
        left_words = count_words(clean_text(sentence[:start]))
        right_words = count_words(clean_text(sentence[end:]))
        if left_words < _MIN_PIECE_WORDS or right_words < _MIN_PIECE_WORDS:
            continue
        balance = abs(left_words - right_words)
        if best_balance is None or balance < best_balance:
            best, best_balance = (start, end, opener), balance

    if best is None or best_balance > max_words:
        # Hard split between words nearest the middle
        tag_spans = [(m.start(), m.end()) for m in _TAG_SPAN_RE.finditer(sentence)]
        target = total // 2
        seen = 0
        best = None
        for match in re.finditer(r"\s+", sentence):
            if any(s <= match.start() < e for s, e in tag_spans):
                continue
            seen = count_words(clean_text(sentence[:match.start()]))
            if seen >= target:
                best = (match.start(), match.end(), "")
                break
        if best is None:
            return None

    start, end, opener = best
    left = _ensure_terminal(sentence[:start])
    right = sentence[end:].strip()
    if opener:
        right = f"{opener}{decapitalize(right)}"
    else:
        right = capitalize_first(right)
    return f"{left} {_ensure_terminal(right)}"


@dataclass
class ReadabilityCorrection:
    """Outcome of correct_readability()."""
    corrected_content: str
    changes_made: dict[int, list[str]] = field(default_factory=dict)
    iterations: int = 0
    final_analysis: dict[str, Any] = field(default_factory=dict)

    @property
    def total_changes(self) -> int:
        return sum(len(c) for c in self.changes_made.values())


class ReadabilityCorrector:
    """
    Iteratively repairs passive voice, sentence length and transition usage.

    Thresholds come from the analyzers, which callers may build from the
    adaptive rules.
    """

    def __init__(
        self,
        passive_analyzer: Optional[PassiveVoiceAnalyzer] = None,
        length_analyzer: Optional[SentenceLengthAnalyzer] = None,
        transition_analyzer: Optional[TransitionWordAnalyzer] = None,
    ):
        self.passive_analyzer = passive_analyzer or PassiveVoiceAnalyzer()
        self.length_analyzer = length_analyzer or SentenceLengthAnalyzer()
        self.transition_analyzer = transition_analyzer or TransitionWordAnalyzer()

    @classmethod
    def from_rules(cls, rules: dict[str, float]) -> "ReadabilityCorrector":
        """Build a corrector whose thresholds follow the adaptive rules."""
        return cls(
            PassiveVoiceAnalyzer(rules.get("max_passive_voice", 10.0)),
            SentenceLengthAnalyzer(
                int(rules.get("max_sentence_length", 20)),
                rules.get("max_long_sentences", 25.0),
            ),
            TransitionWordAnalyzer(rules.get("min_transition_words", 30.0)),
        )

    def analyze(self, content: str) -> dict[str, Any]:
        """Run all three analyzers and summarise compliance."""
        passive = self.passive_analyzer.analyze(content)
        length = self.length_analyzer.analyze(content)
        transitions = self.transition_analyzer.analyze(content)
        return {
            "passive_voice": passive,
            "sentence_length": length,
            "transition_words": transitions,
            "is_compliant": passive.is_compliant and length.is_compliant and transitions.is_compliant,
        }

    def is_compliant(self, content: str) -> bool:
        return self.analyze(content)["is_compliant"]

    def correct_readability(
        self,
        content: str,
        options: Optional[dict[str, bool]] = None,
        max_iterations: int = 3,
    ) -> ReadabilityCorrection:
        """
        Rewrite sentences until every readability metric is compliant.

        Args:
            content: Body (HTML fragment or plain text).
            options: Switches fix_passive_voice, fix_sentence_length and
                add_transitions (all on by default).
            max_iterations: Upper bound on correction rounds.

        Returns:
            ReadabilityCorrection with the rewritten body and per-round changes.
        """
        options = {
            "fix_passive_voice": True,
            "fix_sentence_length": True,
            "add_transitions": True,
            **(options or {}),
        }
        corrected = content or ""
        # Active rewrites drop auxiliaries; the body never loses more than a fifth of its words
        min_words = count_words(plain_text(corrected)) * 0.8
        changes_made: dict[int, list[str]] = {}
        iterations = 0

        for iteration in range(1, max_iterations + 1):
            analysis = self.analyze(corrected)
            if analysis["is_compliant"]:
                break

            iterations = iteration
            changes: list[str] = []

            if options["fix_passive_voice"] and not analysis["passive_voice"].is_compliant:
                corrected = self._fix_passive_voice(corrected, changes, min_words)
            if options["fix_sentence_length"] and not self.length_analyzer.is_compliant(corrected):
                corrected = self._fix_sentence_length(corrected, changes)
            if options["add_transitions"] and not self.transition_analyzer.is_compliant(corrected):
                corrected = self._add_transitions(corrected, changes)

            changes_made[iteration] = changes
            logger.debug(f"Readability round {iteration}: {len(changes)} changes")
            if not changes:
                break

        final = self.analyze(corrected)
        logger.info(
            f"Readability correction finished after {iterations} rounds "
            f"(compliant={final['is_compliant']})"
        )
        return ReadabilityCorrection(
            corrected_content=corrected,
            changes_made=changes_made,
            iterations=iterations,
            final_analysis=final,
        )

    def _fix_passive_voice(self, content: str, changes: list[str], min_words: Optional[float] = None) -> str:
        sentence_map = SentenceMap(content)
        sentences = sentence_map.sentences
        total = len(sentences)
        allowed = int(self.passive_analyzer.max_passive_percentage * total / 100)
        passive_indexes = [i for i, s in enumerate(sentences) if self.passive_analyzer.is_passive(s)]
        excess = len(passive_indexes) - allowed
        words = count_words(plain_text(content))
        removable = words - (words * 0.8 if min_words is None else min_words)
        names = mid_sentence_capitals(sentences)

        for index in passive_indexes:
            if excess <= 0:
                break
            rewritten = sentences[index]
            # A sentence can hold more than one passive construction
            for _ in range(3):
                candidate = passive_to_active(rewritten, names)
                if candidate is None:
                    break
                rewritten = candidate
                if not self.passive_analyzer.is_passive(rewritten):
                    break
            if rewritten != sentences[index] and not self.passive_analyzer.is_passive(rewritten):
                removed = count_words(clean_text(sentences[index])) - count_words(clean_text(rewritten))
                if removed > removable:
                    continue
                removable -= max(0, removed)
                sentence_map.replace(index, rewritten)
                changes.append(f"passive_to_active: {sentences[index]!r} -> {rewritten!r}")
                excess -= 1

        return sentence_map.render()

    def _fix_sentence_length(self, content: str, changes: list[str]) -> str:
        max_words = self.length_analyzer.max_sentence_length
        # Each split leaves pieces of at least four words, which bounds the loop
        budget = max(1, count_words(plain_text(content)) // _MIN_PIECE_WORDS)

        for _ in range(budget):
            sentence_map = SentenceMap(content)
            sentences = sentence_map.sentences
            analysis = self.length_analyzer.analyze_sentences(sentences)
            if analysis.is_compliant:
                break

            longest = max(
                range(len(sentences)),
                key=lambda i: self.length_analyzer.word_count(sentences[i]),
            )
            split = split_long_sentence(sentences[longest], max_words)
            if split is None:
                break
            sentence_map.replace(longest, split)
            changes.append(f"split_sentence: {sentences[longest]!r}")
            content = sentence_map.render()

        return content

    def _add_transitions(self, content: str, changes: list[str]) -> str:
        sentence_map = SentenceMap(content)
        sentences = sentence_map.sentences
        total = len(sentences)
        target = self.transition_analyzer.min_transition_percentage
        have = sum(1 for s in sentences if self.transition_analyzer.has_transition(s))
        max_words = self.length_analyzer.max_sentence_length

        # Leave the opening sentence for last
        order = list(range(1, total)) + [0] if total else []
        opener_index = 0
        for index in order:
            if total == 0 or have / total * 100 >= target:
                break
            sentence = sentences[index]
            if self.transition_analyzer.has_transition(sentence):
                continue
            if self.length_analyzer.word_count(sentence) + 1 > max_words:
                continue
            opener = TRANSITION_OPENERS[opener_index % len(TRANSITION_OPENERS)]
            opener_index += 1
            rewritten = f"{opener}, {decapitalize(sentence)}"
            sentence_map.replace(index, rewritten)
            changes.append(f"add_transition: {opener!r} -> {sentence!r}")
            have += 1

        return sentence_map.render()
