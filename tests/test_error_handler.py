"""
Tests for the error handler: failure log, adaptive rules and overrides.
"""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from seo_compliance_optimizer.config import DEFAULT_ADAPTIVE_RULES
from seo_compliance_optimizer.error_handler import (
    SUGGESTION_THRESHOLD,
    ErrorHandler,
    InMemoryLogSink,
    InMemoryRuleStore,
    JsonLinesLogSink,
)
from seo_compliance_optimizer.exceptions import ExportFormatError
from seo_compliance_optimizer.models import ErrorLogEntry


def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class TestLogValidationFailure:
    """Test appending failures."""

    def test_entry_is_stamped(self, error_handler):
        entry = error_handler.log_validation_failure("title", "title_missing", {"iteration": 1})
        assert entry.session_id == "test-session"
        assert entry.severity == "error"
        assert entry.context == {"iteration": 1}
        assert error_handler.get_recent_errors() == [entry]

    def test_stats_counted(self, error_handler):
        for _ in range(3):
            error_handler.log_validation_failure("readability", "passive_voice", severity="warning")
        stats = error_handler.get_error_stats()
        assert stats["total"] == 3
        assert stats["by_component"] == {"readability": 3}
        assert stats["by_severity"] == {"warning": 3}
        assert stats["failures"][0]["count"] == 3

    def test_stats_filtered_by_component(self, error_handler):
        error_handler.log_validation_failure("readability", "passive_voice")
        error_handler.log_validation_failure("title", "title_missing")
        stats = error_handler.get_error_stats(component="title")
        assert stats["total"] == 1
        assert [f["error"] for f in stats["failures"]] == ["title_missing"]

    def test_recent_errors_newest_first(self, error_handler):
        error_handler.log_validation_failure("title", "first")
        error_handler.log_validation_failure("images", "second")
        error_handler.log_validation_failure("title", "third")
        assert [e.error for e in error_handler.get_recent_errors(limit=2)] == ["third", "second"]
        assert [e.error for e in error_handler.get_recent_errors(component="title")] == ["third", "first"]


class TestAdaptiveSuggestions:
    """Test threshold-triggered rule suggestions."""

    def test_suggestion_logged_at_threshold(self, error_handler):
        for _ in range(SUGGESTION_THRESHOLD):
            error_handler.log_validation_failure("meta_description", "meta_description_length: too short")
        suggestions = error_handler.get_recent_errors(component="adaptive_suggestion")
        assert len(suggestions) == 1
        assert suggestions[0].context["suggested_changes"] == {"min_meta_desc_length": 110}
        assert suggestions[0].severity == "info"

    def test_suggestion_never_applied(self, error_handler):
        for _ in range(SUGGESTION_THRESHOLD):
            error_handler.log_validation_failure("meta_description", "meta_description_length: too short")
        assert error_handler.get_adaptive_rules()["min_meta_desc_length"] == 120

    def test_no_suggestion_below_threshold(self, error_handler):
        for _ in range(SUGGESTION_THRESHOLD - 1):
            error_handler.log_validation_failure("meta_description", "meta_description_length: too short")
        assert error_handler.get_recent_errors(component="adaptive_suggestion") == []

    def test_suggest_rule_changes(self, error_handler):
        suggest = error_handler.suggest_rule_changes
        assert suggest("meta_description", "meta_description_length: too long") == {"max_meta_desc_length": 166}
        assert suggest("keyword_density", "keyword_density: too low") == {"min_keyword_density": 0.3}
        assert suggest("keyword_density", "keyword_density: too high") == {"max_keyword_density": 2.7}
        assert suggest("readability", "passive_voice") == {"max_passive_voice": 15.0}
        assert suggest("readability", "long_sentences") == {"max_long_sentences": 30.0}
        assert suggest("readability", "transition_words") == {"min_transition_words": 25.0}
        assert suggest("title", "title_length: too long") == {"max_title_length": 71}
        assert suggest("images", "alt_text") == {}

    def test_classify_error(self):
        assert ErrorHandler.classify_error("Fatal exception in corrector") == "critical"
        assert ErrorHandler.classify_error("Request timeout") == "recoverable"
        assert ErrorHandler.classify_error("Partial result returned") == "degraded"
        assert ErrorHandler.classify_error("Notice: nothing changed") == "informational"
        assert ErrorHandler.classify_error("something else") == "recoverable"


class TestAdaptiveRules:
    """Test rule updates."""

    def test_defaults(self, error_handler):
        assert error_handler.get_adaptive_rules() == DEFAULT_ADAPTIVE_RULES

    def test_returned_rules_are_a_copy(self, error_handler):
        rules = error_handler.get_adaptive_rules()
        rules["max_title_length"] = 1
        assert error_handler.get_adaptive_rules()["max_title_length"] == 66

    def test_update_accepts_numbers_and_rejects_others(self, error_handler):
        outcome = error_handler.update_adaptive_rules({
            "max_title_length": 70,
            "custom_threshold": 3.5,
            "min_keyword_density": "high",
            "max_passive_voice": True,
        })
        assert outcome["accepted"] == {"max_title_length": 70, "custom_threshold": 3.5}
        assert set(outcome["rejected"]) == {"min_keyword_density", "max_passive_voice"}
        rules = error_handler.get_adaptive_rules()
        assert rules["max_title_length"] == 70
        assert rules["custom_threshold"] == 3.5
        assert rules["min_keyword_density"] == 0.5

    def test_rules_persist_to_store(self):
        store = InMemoryRuleStore()
        ErrorHandler(store, InMemoryLogSink()).update_adaptive_rules({"max_title_length": 60})
        assert ErrorHandler(store, InMemoryLogSink()).get_adaptive_rules()["max_title_length"] == 60


class TestManualOverrides:
    """Test the override registry."""

    def test_add_get_remove(self, error_handler):
        override = error_handler.add_manual_override(
            "title", "title_length: too long", reason="Brand name", approved_by="editor"
        )
        assert error_handler.get_manual_override("title", "title_length: too long") == override
        assert error_handler.list_manual_overrides() == [override]
        assert error_handler.remove_manual_override("title", "title_length: too long")
        assert error_handler.get_manual_override("title", "title_length: too long") is None
        assert not error_handler.remove_manual_override("title", "title_length: too long")

    def test_override_changes_are_logged(self, error_handler):
        error_handler.add_manual_override("title", "title_length: too long")
        error_handler.remove_manual_override("title", "title_length: too long")
        entries = error_handler.get_recent_errors(component="manual_override")
        assert len(entries) == 2
        assert "removed_at" in entries[0].context

    def test_override_attached_to_matching_failure(self, error_handler):
        error_handler.add_manual_override("title", "title_length: too long", reason="Brand name")
        entry = error_handler.log_validation_failure("title", "title_length: too long")
        assert entry.context["manual_override"]["reason"] == "Brand name"
        other = error_handler.log_validation_failure("title", "title_missing")
        assert "manual_override" not in other.context


class TestRetentionAndExport:
    """Test log clearing and export."""

    def test_clear_old_logs(self, error_handler):
        error_handler.log_sink.append(ErrorLogEntry("title", "old", timestamp=_days_ago(100)))
        error_handler.log_validation_failure("title", "new")
        assert error_handler.clear_old_logs(days=90) == 1
        assert [e.error for e in error_handler.log_sink.read()] == ["new"]
        assert error_handler.clear_old_logs(days=90) == 0

    def test_stats_window(self, error_handler):
        error_handler.log_sink.append(ErrorLogEntry("title", "old", timestamp=_days_ago(40)))
        error_handler.log_validation_failure("title", "new")
        assert error_handler.get_error_stats(days=30)["total"] == 1
        assert error_handler.get_error_stats(days=60)["total"] == 2

    def test_export_json(self, error_handler):
        error_handler.log_validation_failure("title", "title_missing")
        exported = error_handler.export_logs("json")
        assert exported[0]["component"] == "title"
        assert exported[0]["error"] == "title_missing"

    def test_export_csv(self, error_handler):
        error_handler.log_validation_failure("title", "title_missing", {"ignored": True})
        lines = error_handler.export_logs("csv").strip().splitlines()
        assert lines[0] == "Timestamp,Component,Error,Severity,User ID,Session ID"
        assert len(lines) == 2
        assert ",title,title_missing,error,," in lines[1]
        assert lines[1].endswith("test-session")

    def test_export_csv_empty(self, error_handler):
        assert error_handler.export_logs("csv").strip() == "Timestamp,Component,Error,Severity,User ID,Session ID"

    def test_export_unknown_format(self, error_handler):
        with pytest.raises(ExportFormatError):
            error_handler.export_logs("xml")


class TestFilePersistence:
    """Test the JSON-backed stores."""

    def test_rules_file_round_trip(self, tmp_path):
        ErrorHandler.from_directory(tmp_path).update_adaptive_rules({"max_title_length": 60})
        assert json.loads((tmp_path / "rules.json").read_text())["max_title_length"] == 60
        assert ErrorHandler.from_directory(tmp_path).get_adaptive_rules()["max_title_length"] == 60

    def test_log_file_one_line_per_entry(self, file_error_handler, tmp_path):
        file_error_handler.log_validation_failure("title", "title_missing")
        file_error_handler.log_validation_failure("images", "alt_text")
        lines = (tmp_path / "errors.jsonl").read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["component"] == "images"

    def test_stats_rebuilt_from_log(self, file_error_handler, tmp_path):
        for _ in range(3):
            file_error_handler.log_validation_failure("title", "title_missing")
        reloaded = ErrorHandler.from_directory(tmp_path)
        assert reloaded.get_error_stats()["failures"][0]["count"] == 3

    def test_malformed_lines_skipped(self, tmp_path):
        path = tmp_path / "errors.jsonl"
        entry = ErrorLogEntry("title", "title_missing")
        path.write_text("not json\n" + json.dumps(entry.to_dict()) + "\n\n")
        assert JsonLinesLogSink(path).read() == [entry]

    def test_clear_rewrites_file(self, file_error_handler, tmp_path):
        file_error_handler.log_sink.append(ErrorLogEntry("title", "old", timestamp=_days_ago(100)))
        file_error_handler.log_validation_failure("title", "new")
        assert file_error_handler.clear_old_logs(days=90) == 1
        assert len((tmp_path / "errors.jsonl").read_text().splitlines()) == 1

    def test_concurrent_writers_keep_log_and_rules_whole(self, tmp_path):
        handler = ErrorHandler.from_directory(tmp_path, session_id="threads")
        workers, per_worker = 8, 25

        def work(number: int) -> None:
            for step in range(per_worker):
                handler.log_validation_failure(f"worker_{number}", f"failure {step}", {"step": step})
                handler.update_adaptive_rules({f"worker_{number}_step": step})

        threads = [threading.Thread(target=work, args=(n,)) for n in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = (tmp_path / "errors.jsonl").read_text().splitlines()
        assert len(lines) == workers * per_worker
        assert all(json.loads(line)["session_id"] == "threads" for line in lines)

        saved = json.loads((tmp_path / "rules.json").read_text())
        for number in range(workers):
            assert saved[f"worker_{number}_step"] == per_worker - 1
        assert saved["max_title_length"] == 66
        assert handler.get_adaptive_rules() == saved
