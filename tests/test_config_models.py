"""
Tests for configuration and data models.
"""

import logging

import pytest

from seo_compliance_optimizer.config import (
    DEFAULT_ADAPTIVE_RULES,
    DEFAULT_PRIORITY_ORDER,
    OptimizerConfig,
    configure_logging,
)
from seo_compliance_optimizer.exceptions import ComplianceError, CorrectorError, RuleValidationError
from seo_compliance_optimizer.models import (
    ContentRecord,
    ErrorLogEntry,
    Issue,
    IssueType,
    ProgressData,
    Severity,
    TerminationReason,
    ValidationResult,
)


class TestOptimizerConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = OptimizerConfig()
        assert config.max_iterations == 5
        assert config.target_compliance_score == 100.0
        assert config.enable_early_termination is True
        assert config.stagnation_threshold == 2
        assert config.min_improvement_threshold == 1.0
        assert config.auto_correction is True
        assert config.priority_order == DEFAULT_PRIORITY_ORDER

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            OptimizerConfig(max_iterations=0)
        with pytest.raises(ValueError):
            OptimizerConfig(target_compliance_score=120)
        with pytest.raises(ValueError):
            OptimizerConfig(stagnation_threshold=0)
        with pytest.raises(ValueError):
            OptimizerConfig(min_improvement_threshold=-1)
        with pytest.raises(ValueError):
            OptimizerConfig(log_level="verbose")

    def test_unknown_corrector_family_rejected(self):
        with pytest.raises(ValueError, match="Unknown corrector families"):
            OptimizerConfig(priority_order=("meta_description", "spelling"))

    def test_priority_order_list_is_normalized(self):
        config = OptimizerConfig(priority_order=["title", "images"])
        assert config.priority_order == ("title", "images")
        assert config.to_dict()["priority_order"] == ["title", "images"]

    def test_presets(self):
        assert OptimizerConfig.strict().max_iterations == 10
        assert OptimizerConfig.lenient().target_compliance_score == 80.0


class TestConfigureLogging:
    """Test package logger setup."""

    def test_sets_level(self):
        package_logger = configure_logging("debug")
        assert package_logger.level == logging.DEBUG
        configure_logging("info")

    def test_does_not_duplicate_handlers(self):
        configure_logging("info")
        count = len(logging.getLogger("seo_compliance_optimizer").handlers)
        configure_logging("warning")
        assert len(logging.getLogger("seo_compliance_optimizer").handlers) == count
        configure_logging("info")


class TestDefaultRules:
    """Test the default adaptive thresholds."""

    def test_expected_keys(self):
        assert DEFAULT_ADAPTIVE_RULES["min_meta_desc_length"] == 120
        assert DEFAULT_ADAPTIVE_RULES["max_meta_desc_length"] == 156
        assert DEFAULT_ADAPTIVE_RULES["max_title_length"] == 66
        assert DEFAULT_ADAPTIVE_RULES["max_sentence_length"] == 20


class TestContentRecord:
    """Test content record construction."""

    def test_none_fields_become_empty_strings(self):
        record = ContentRecord(title=None, body=None, meta_description=None)
        assert record.title == ""
        assert record.body == ""
        assert record.meta_description == ""
        assert record.content_type == "post"

    def test_from_dict_accepts_content_key(self):
        record = ContentRecord.from_dict({"title": "Hello", "content": "<p>Body</p>", "metaDescription": "Meta"})
        assert record.body == "<p>Body</p>"
        assert record.meta_description == "Meta"

    def test_round_trip_dict(self):
        record = ContentRecord(title="T", body="B", excerpt="E", meta_description="M")
        assert ContentRecord.from_dict(record.to_dict()) == record


class TestIssueModels:
    """Test issue categories and grouping."""

    def test_category_mapping(self):
        assert IssueType.META_DESCRIPTION_LENGTH.category == "meta_description"
        assert IssueType.SUBHEADING_KEYWORD_USAGE.category == "keyword_density"
        assert IssueType.TRANSITION_WORDS.category == "readability"
        assert IssueType.ALT_TEXT.category == "images"
        assert IssueType.CONTENT_MISSING.category == "content"

    def test_every_issue_type_has_a_category(self):
        for issue_type in IssueType:
            assert issue_type.category

    def test_issue_is_immutable(self):
        issue = Issue(IssueType.TITLE_MISSING, Severity.CRITICAL, "Title is missing")
        with pytest.raises(AttributeError):
            issue.message = "changed"

    def test_by_severity(self):
        result = ValidationResult(
            errors=[Issue(IssueType.TITLE_MISSING, Severity.CRITICAL, "a")],
            warnings=[Issue(IssueType.TRANSITION_WORDS, Severity.MINOR, "b")],
        )
        grouped = result.by_severity()
        assert len(grouped[Severity.CRITICAL]) == 1
        assert grouped[Severity.MAJOR] == []
        assert len(grouped[Severity.MINOR]) == 1

    def test_progress_data_serializes_reason(self):
        data = ProgressData(termination_reason=TerminationReason.STAGNATION_DETECTED)
        assert data.to_dict()["termination_reason"] == "stagnation_detected"
        assert ProgressData().to_dict()["termination_reason"] is None


class TestErrorLogEntry:
    """Test log entry serialization."""

    def test_from_dict_defaults(self):
        entry = ErrorLogEntry.from_dict({"component": "title", "error": "title_missing"})
        assert entry.severity == "error"
        assert entry.context == {}
        assert entry.timestamp

    def test_round_trip(self):
        entry = ErrorLogEntry("images", "alt_text", "warning", {"image_index": 0}, "s1", "u1")
        assert ErrorLogEntry.from_dict(entry.to_dict()) == entry


class TestExceptions:
    """Test exception hierarchy."""

    def test_rule_validation_error_message(self):
        error = RuleValidationError("max_title_length", "long")
        assert isinstance(error, ComplianceError)
        assert "max_title_length" in str(error)
        assert error.value == "long"

    def test_corrector_error_keeps_component(self):
        error = CorrectorError("readability", "boom")
        assert error.component == "readability"
        assert str(error) == "readability: boom"
