"""
Validation-failure logging, adaptive rules and manual overrides.

The error handler is process-wide state shared by every optimization run:
an append-only error log (behind a LogSink), per-failure statistics, the
adaptive rule thresholds (behind a RuleStore) and the manual override
registry. Writes to the log and to the rules are serialized with a lock so
concurrent runs never interleave a record or observe a half-merged rule set.
"""

import json
import logging
import os
import re
import tempfile
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, Union

import pandas as pd

from .config import DEFAULT_ADAPTIVE_RULES
from .exceptions import ExportFormatError, RuleValidationError
from .models import ErrorLogEntry, ManualOverride, utc_now

logger = logging.getLogger(__name__)


# Occurrences of one (component, error) pair before a rule change is suggested
SUGGESTION_THRESHOLD = 10

CSV_COLUMNS = {
    "timestamp": "Timestamp",
    "component": "Component",
    "error": "Error",
    "severity": "Severity",
    "user_id": "User ID",
    "session_id": "Session ID",
}

# Keyword patterns for classify_error, checked in this order
ERROR_CLASSES = (
    ("critical", re.compile(r"fatal|exception|crash", re.IGNORECASE)),
    ("recoverable", re.compile(r"timeout|rate limit|temporary|retry", re.IGNORECASE)),
    ("degraded", re.compile(r"partial|incomplete|degraded", re.IGNORECASE)),
    ("informational", re.compile(r"warning|notice|info", re.IGNORECASE)),
)


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _cutoff(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuleStore(Protocol):
    """Persistence for the adaptive rule map."""

    def load(self) -> dict[str, float]: ...

    def save(self, rules: dict[str, float]) -> None: ...


class LogSink(Protocol):
    """Append-only persistence for error log entries."""

    def append(self, entry: ErrorLogEntry) -> None: ...

    def read(self) -> list[ErrorLogEntry]: ...

    def rewrite(self, entries: list[ErrorLogEntry]) -> None: ...


class InMemoryRuleStore:
    """Rule store for tests and single-process use."""

    def __init__(self, rules: Optional[dict[str, float]] = None):
        self._rules = dict(rules) if rules is not None else {}

    def load(self) -> dict[str, float]:
        return dict(self._rules)

    def save(self, rules: dict[str, float]) -> None:
        self._rules = dict(rules)


class JsonFileRuleStore:
    """Rule store backed by a JSON file, replaced atomically on save."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> dict[str, float]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        return {k: v for k, v in data.items() if _is_number(v)}

    def save(self, rules: dict[str, float]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(rules, handle, indent=2, sort_keys=True)
        os.replace(tmp_name, self.path)


class InMemoryLogSink:
    """Log sink for tests and single-process use."""

    def __init__(self):
        self._entries: list[ErrorLogEntry] = []

    def append(self, entry: ErrorLogEntry) -> None:
        self._entries.append(entry)

    def read(self) -> list[ErrorLogEntry]:
        return list(self._entries)

    def rewrite(self, entries: list[ErrorLogEntry]) -> None:
        self._entries = list(entries)


class JsonLinesLogSink:
    """Log sink writing one JSON object per line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, entry: ErrorLogEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n"
        # One write call per record keeps lines whole under O_APPEND
        with open(self.path, "a", encoding="utf-8") as handle:
            handle.write(line)

    def read(self) -> list[ErrorLogEntry]:
        if not self.path.exists():
            return []
        entries = []
        with open(self.path, encoding="utf-8") as handle:
            for number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(ErrorLogEntry.from_dict(json.loads(line)))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed log line {number} in {self.path}")
        return entries

    def rewrite(self, entries: list[ErrorLogEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            for entry in entries:
                handle.write(json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n")
        os.replace(tmp_name, self.path)


class ErrorHandler:
    """
    Central error log and adaptive rule registry.

    Args:
        rule_store: Persistence for adaptive rules (in memory by default).
        log_sink: Persistence for log entries (in memory by default).
        session_id: Identifier stamped on every entry.
        user_id: Identifier of the acting user, if any.
    """

    def __init__(
        self,
        rule_store: Optional[RuleStore] = None,
        log_sink: Optional[LogSink] = None,
        session_id: Optional[str] = None,
        user_id: str = "",
    ):
        self.rule_store = rule_store if rule_store is not None else InMemoryRuleStore()
        self.log_sink = log_sink if log_sink is not None else InMemoryLogSink()
        self.session_id = session_id or f"seo_{uuid.uuid4().hex[:12]}"
        self.user_id = user_id
        self._lock = threading.RLock()
        self._rules: dict[str, float] = {**DEFAULT_ADAPTIVE_RULES, **self.rule_store.load()}
        self._overrides: dict[tuple[str, str], ManualOverride] = {}
        self._stats: dict[tuple[str, str], dict[str, Any]] = {}
        for entry in self.log_sink.read():
            self._record_stat(entry)

    @classmethod
    def from_directory(cls, directory: Union[str, Path], **kwargs) -> "ErrorHandler":
        """Build a handler persisting to ``rules.json`` and ``errors.jsonl`` in a directory."""
        directory = Path(directory)
        return cls(
            JsonFileRuleStore(directory / "rules.json"),
            JsonLinesLogSink(directory / "errors.jsonl"),
            **kwargs,
        )

    # Logging

    def log_validation_failure(
        self,
        component: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
        severity: str = "error",
    ) -> ErrorLogEntry:
        """
        Append a failure to the log and update its statistics.

        When the same (component, message) pair reaches the suggestion
        threshold an ``adaptive_suggestion`` entry is logged as well. The
        suggestion is never applied.

        Returns:
            The logged entry.
        """
        entry = ErrorLogEntry(
            component=component,
            error=message,
            severity=severity,
            context=dict(context or {}),
            session_id=self.session_id,
            user_id=self.user_id,
        )
        with self._lock:
            override = self._overrides.get((component, message))
            if override is not None:
                entry.context["manual_override"] = override.to_dict()
            self.log_sink.append(entry)
            count = self._record_stat(entry)

        if severity in ("critical", "error"):
            logger.error(f"[{component}] {message}")
        else:
            logger.debug(f"[{component}] {message}")

        if component != "adaptive_suggestion" and count >= SUGGESTION_THRESHOLD:
            self._suggest_rule_adaptation(component, message, context or {})
        return entry

    def _record_stat(self, entry: ErrorLogEntry) -> int:
        key = (entry.component, entry.error)
        stat = self._stats.get(key)
        if stat is None:
            stat = {
                "component": entry.component,
                "error": entry.error,
                "severity": entry.severity,
                "count": 0,
                "first_occurrence": entry.timestamp,
                "last_occurrence": entry.timestamp,
            }
            self._stats[key] = stat
        stat["count"] += 1
        stat["last_occurrence"] = entry.timestamp
        return stat["count"]

    def suggest_rule_changes(self, component: str, message: str) -> dict[str, float]:
        """Rule changes that would make a recurring failure less likely."""
        rules = self.get_adaptive_rules()
        text = message.lower()
        suggestions: dict[str, float] = {}
        if component == "meta_description":
            if "too short" in text:
                suggestions["min_meta_desc_length"] = max(100, rules["min_meta_desc_length"] - 10)
            elif "too long" in text:
                suggestions["max_meta_desc_length"] = min(170, rules["max_meta_desc_length"] + 10)
        elif component == "keyword_density":
            if "too low" in text:
                suggestions["min_keyword_density"] = round(max(0.1, rules["min_keyword_density"] - 0.2), 2)
            elif "too high" in text:
                suggestions["max_keyword_density"] = round(rules["max_keyword_density"] + 0.2, 2)
        elif component == "readability":
            if "passive" in text:
                suggestions["max_passive_voice"] = rules["max_passive_voice"] + 5
            elif "long" in text:
                suggestions["max_long_sentences"] = rules["max_long_sentences"] + 5
            elif "transition" in text:
                suggestions["min_transition_words"] = max(0, rules["min_transition_words"] - 5)
        elif component == "title" and "too long" in text:
            suggestions["max_title_length"] = rules["max_title_length"] + 5
        return suggestions

    def _suggest_rule_adaptation(self, component: str, message: str, context: dict[str, Any]) -> None:
        suggestions = self.suggest_rule_changes(component, message)
        if not suggestions:
            return
        logger.warning(f"Rule adaptation suggested for {component}: {suggestions}")
        self.log_validation_failure(
            "adaptive_suggestion",
            "Rule adaptation suggested",
            {
                "component": component,
                "error": message,
                "suggested_changes": suggestions,
                "current_rules": self.get_adaptive_rules(),
            },
            severity="info",
        )

    @staticmethod
    def classify_error(message: str, component: str = "") -> str:
        """Classify a failure as critical, recoverable, degraded or informational."""
        for label, pattern in ERROR_CLASSES:
            if pattern.search(message or ""):
                return label
        return "recoverable"

    # Adaptive rules

    def get_adaptive_rules(self) -> dict[str, float]:
        with self._lock:
            return dict(self._rules)

    def update_adaptive_rules(self, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Merge new thresholds into the rule set.

        Unknown keys are added and existing keys overwritten. Non-numeric
        values are rejected per key; the rest of the update still applies.

        Returns:
            {"accepted": {key: value}, "rejected": {key: reason}}
        """
        accepted: dict[str, float] = {}
        rejected: dict[str, str] = {}
        for key, value in (updates or {}).items():
            if _is_number(value):
                accepted[key] = value
            else:
                rejected[key] = str(RuleValidationError(key, value))

        with self._lock:
            if accepted:
                merged = {**self._rules, **accepted}
                self.rule_store.save(merged)
                self._rules = merged

        if accepted:
            logger.info(f"Adaptive rules updated: {sorted(accepted)}")
        if rejected:
            logger.warning(f"Adaptive rule values rejected: {rejected}")
        return {"accepted": accepted, "rejected": rejected}

    # Manual overrides

    def add_manual_override(
        self,
        component: str,
        error_signature: str,
        reason: str = "",
        approved_by: str = "",
        skip_validation: bool = True,
    ) -> ManualOverride:
        override = ManualOverride(component, error_signature, skip_validation, reason, approved_by)
        with self._lock:
            self._overrides[(component, error_signature)] = override
        self.log_validation_failure(
            "manual_override", f"Override added for {component}: {error_signature}",
            override.to_dict(), severity="info",
        )
        return override

    def get_manual_override(self, component: str, error_signature: str) -> Optional[ManualOverride]:
        with self._lock:
            return self._overrides.get((component, error_signature))

    def remove_manual_override(self, component: str, error_signature: str) -> bool:
        with self._lock:
            removed = self._overrides.pop((component, error_signature), None)
        if removed is None:
            return False
        self.log_validation_failure(
            "manual_override", f"Override removed for {component}: {error_signature}",
            {**removed.to_dict(), "removed_at": utc_now()}, severity="info",
        )
        return True

    def list_manual_overrides(self) -> list[ManualOverride]:
        with self._lock:
            return list(self._overrides.values())

    # Reporting

    def get_error_stats(self, component: Optional[str] = None, days: int = 30) -> dict[str, Any]:
        """
        Summarize failures seen within the last ``days`` days.

        Returns:
            Totals per component and per severity, plus the per-failure
            statistics sorted by frequency.
        """
        cutoff = _cutoff(days)
        by_component: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        total = 0
        for entry in self.log_sink.read():
            if component is not None and entry.component != component:
                continue
            if _parse_time(entry.timestamp) < cutoff:
                continue
            total += 1
            by_component[entry.component] = by_component.get(entry.component, 0) + 1
            by_severity[entry.severity] = by_severity.get(entry.severity, 0) + 1

        with self._lock:
            failures = [
                dict(s) for s in self._stats.values()
                if (component is None or s["component"] == component)
                and _parse_time(s["last_occurrence"]) >= cutoff
            ]
        failures.sort(key=lambda s: s["count"], reverse=True)
        return {
            "total": total,
            "by_component": by_component,
            "by_severity": by_severity,
            "failures": failures,
        }

    def get_recent_errors(self, limit: int = 50, component: Optional[str] = None) -> list[ErrorLogEntry]:
        """Newest entries first."""
        entries = [e for e in reversed(self.log_sink.read()) if component is None or e.component == component]
        return entries[:limit]

    def clear_old_logs(self, days: int = 90) -> int:
        """Drop entries older than ``days`` days; returns how many were removed."""
        cutoff = _cutoff(days)
        with self._lock:
            entries = self.log_sink.read()
            kept = [e for e in entries if _parse_time(e.timestamp) >= cutoff]
            removed = len(entries) - len(kept)
            if removed:
                self.log_sink.rewrite(kept)
        if removed:
            logger.info(f"Cleared {removed} log entries older than {days} days")
        return removed

    def export_logs(self, format: str = "json", days: int = 30) -> Union[list[dict[str, Any]], str]:
        """
        Export recent log entries.

        Args:
            format: "json" for a list of dicts, "csv" for CSV text.
            days: Window of entries to include.

        Raises:
            ExportFormatError: For any other format.
        """
        if format not in ("json", "csv"):
            raise ExportFormatError(f"Unsupported export format: {format!r}")
        cutoff = _cutoff(days)
        entries = [e.to_dict() for e in self.log_sink.read() if _parse_time(e.timestamp) >= cutoff]
        if format == "json":
            return entries

        df = pd.DataFrame(entries, columns=list(CSV_COLUMNS))
        df = df.rename(columns=CSV_COLUMNS)
        return df.to_csv(index=False)
