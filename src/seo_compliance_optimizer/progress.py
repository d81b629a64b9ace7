"""
Per-pass progress tracking for an optimization session.

Records score and issue movement for every pass, keeps a bounded history
of content snapshots (identified by a SHA-256 hash) for rollback, and
builds a summary report.
"""

import hashlib
import json
import logging
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

from .models import ContentRecord, Issue, utc_now

logger = logging.getLogger(__name__)


def content_hash(content: ContentRecord) -> str:
    """Stable hash over the fields correctors change."""
    payload = json.dumps(
        {"title": content.title, "body": content.body, "meta_description": content.meta_description},
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass
class PassRecord:
    """Measurements for one optimization pass."""
    pass_number: int
    before_score: float
    after_score: float
    issues_before: int
    issues_after: int
    corrections: list[str] = field(default_factory=list)
    resolved_issue_types: list[str] = field(default_factory=list)
    new_issue_types: list[str] = field(default_factory=list)
    persistent_issue_types: list[str] = field(default_factory=list)
    duration: float = 0.0
    timestamp: str = field(default_factory=utc_now)

    @property
    def score_improvement(self) -> float:
        return round(self.after_score - self.before_score, 2)

    @property
    def issues_resolved(self) -> int:
        return self.issues_before - self.issues_after

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_number": self.pass_number,
            "before_score": self.before_score,
            "after_score": self.after_score,
            "score_improvement": self.score_improvement,
            "issues_before": self.issues_before,
            "issues_after": self.issues_after,
            "issues_resolved": self.issues_resolved,
            "corrections": list(self.corrections),
            "corrections_count": len(self.corrections),
            "resolved_issue_types": list(self.resolved_issue_types),
            "new_issue_types": list(self.new_issue_types),
            "persistent_issue_types": list(self.persistent_issue_types),
            "duration": self.duration,
            "timestamp": self.timestamp,
        }


@dataclass
class HistoryEntry:
    """Snapshot of the content after a pass (pass 0 is the input)."""
    pass_number: int
    stage: str
    score: float
    content: ContentRecord
    content_hash: str
    timestamp: str = field(default_factory=utc_now)


class ProgressTracker:
    """
    Tracks one optimization session.

    Args:
        max_history: Content snapshots kept for rollback (oldest dropped first;
            the initial snapshot is always kept).
    """

    def __init__(self, max_history: int = 10):
        self.max_history = max(2, max_history)
        self.passes: list[PassRecord] = []
        self.history: list[HistoryEntry] = []
        self.initial_score = 0.0
        self.initial_issues = 0
        self.final_score = 0.0
        self.compliance_achieved = False
        self.termination_reason: Optional[str] = None
        self._started = 0.0
        self._ended: Optional[float] = None

    def start_session(self, content: ContentRecord, score: float, issues: Sequence[Issue] = ()) -> None:
        self.passes.clear()
        self.history.clear()
        self.initial_score = self.final_score = score
        self.initial_issues = len(issues)
        self.compliance_achieved = False
        self.termination_reason = None
        self._started = time.perf_counter()
        self._ended = None
        self._snapshot(0, "initial", score, content)

    def record_pass(
        self,
        pass_number: int,
        content_after: ContentRecord,
        before_score: float,
        after_score: float,
        issues_before: Sequence[Issue],
        issues_after: Sequence[Issue],
        corrections: Sequence[str] = (),
        duration: float = 0.0,
    ) -> PassRecord:
        """Record one pass and snapshot its output."""
        before_types = {i.type.value for i in issues_before}
        after_types = {i.type.value for i in issues_after}
        record = PassRecord(
            pass_number=pass_number,
            before_score=before_score,
            after_score=after_score,
            issues_before=len(issues_before),
            issues_after=len(issues_after),
            corrections=list(corrections),
            resolved_issue_types=sorted(before_types - after_types),
            new_issue_types=sorted(after_types - before_types),
            persistent_issue_types=sorted(before_types & after_types),
            duration=round(duration, 4),
        )
        self.passes.append(record)
        self.final_score = after_score
        self._snapshot(pass_number, "optimization", after_score, content_after)
        logger.debug(
            f"Pass {pass_number}: {before_score} -> {after_score} "
            f"({record.issues_resolved} issues resolved, {len(record.corrections)} corrections)"
        )
        return record

    def end_session(self, compliance_achieved: bool, termination_reason: str, final_score: Optional[float] = None) -> None:
        self.compliance_achieved = compliance_achieved
        self.termination_reason = termination_reason
        if final_score is not None:
            self.final_score = final_score
        self._ended = time.perf_counter()

    @property
    def duration(self) -> float:
        end = self._ended if self._ended is not None else time.perf_counter()
        return round(end - self._started, 4) if self._started else 0.0

    def _snapshot(self, pass_number: int, stage: str, score: float, content: ContentRecord) -> None:
        copy = replace(content)
        self.history.append(HistoryEntry(pass_number, stage, score, copy, content_hash(copy)))
        if len(self.history) > self.max_history:
            # Keep the input snapshot, drop the oldest pass after it
            del self.history[1]

    def rollback_to_pass(self, pass_number: int) -> Optional[ContentRecord]:
        """
        Return a copy of the content as it was after ``pass_number``.

        Returns:
            None when that snapshot is no longer in the history.
        """
        for entry in reversed(self.history):
            if entry.pass_number == pass_number:
                logger.info(f"Rolled back to pass {pass_number} (score {entry.score})")
                return replace(entry.content)
        return None

    def best_pass(self) -> Optional[PassRecord]:
        if not self.passes:
            return None
        return max(self.passes, key=lambda p: (p.score_improvement, p.issues_resolved))

    def worst_pass(self) -> Optional[PassRecord]:
        if not self.passes:
            return None
        return min(self.passes, key=lambda p: (p.score_improvement, p.issues_resolved))

    def report(self) -> dict[str, Any]:
        """Summary of the session with best/worst pass and before/after figures."""
        improvements = [p.score_improvement for p in self.passes]
        corrections = Counter(c.split(":", 1)[0] for p in self.passes for c in p.corrections)
        best, worst = self.best_pass(), self.worst_pass()
        return {
            "summary": {
                "total_passes": len(self.passes),
                "duration": self.duration,
                "initial_score": self.initial_score,
                "final_score": self.final_score,
                "total_improvement": round(self.final_score - self.initial_score, 2),
                "compliance_achieved": self.compliance_achieved,
                "termination_reason": self.termination_reason,
                "total_corrections": sum(len(p.corrections) for p in self.passes),
            },
            "progress": {
                "score_progression": [self.initial_score] + [p.after_score for p in self.passes],
                "average_improvement": round(sum(improvements) / len(improvements), 2) if improvements else 0.0,
                "consistent_improvement": all(i >= 0 for i in improvements),
                "best_pass": best.to_dict() if best else None,
                "worst_pass": worst.to_dict() if worst else None,
                "corrections_by_type": dict(corrections),
            },
            "before_after": {
                "score": {"before": self.initial_score, "after": self.final_score},
                "issues": {
                    "before": self.initial_issues,
                    "after": self.passes[-1].issues_after if self.passes else self.initial_issues,
                },
            },
            "passes": [p.to_dict() for p in self.passes],
            "content_history": [
                {"pass_number": h.pass_number, "stage": h.stage, "score": h.score,
                 "content_hash": h.content_hash, "timestamp": h.timestamp}
                for h in self.history
            ],
        }
