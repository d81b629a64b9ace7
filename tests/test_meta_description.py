"""
Tests for meta description correction.
"""

import pytest

from seo_compliance_optimizer.meta_description import MetaDescriptionCorrector


LONG_DESCRIPTION = (
    "Content marketing is a long-term strategy that helps small businesses attract readers, "
    "build trust with customers, improve search rankings, support sales conversations and "
    "create a library of useful resources that keeps paying off for years to come."
)


@pytest.fixture
def corrector() -> MetaDescriptionCorrector:
    return MetaDescriptionCorrector()


class TestValidate:
    """Test meta description validation."""

    def test_valid_description(self, corrector, sample_content, keyword):
        verdict = corrector.validate(sample_content.meta_description, keyword)
        assert verdict.is_valid
        assert verdict.has_keyword

    def test_short_description(self, corrector, keyword):
        verdict = corrector.validate("Content marketing tips.", keyword)
        assert not verdict.is_valid
        assert verdict.issues[0].startswith("too_short")

    def test_missing_description(self, corrector, keyword):
        verdict = corrector.validate("", keyword)
        assert "missing" in verdict.issues
        assert "missing_keyword" in verdict.issues

    def test_synonym_satisfies_keyword_check(self, corrector):
        verdict = corrector.validate("Blogging tips for busy founders.", "content marketing", ["blogging"])
        assert verdict.has_keyword

    def test_invalid_range_rejected(self):
        with pytest.raises(ValueError):
            MetaDescriptionCorrector(min_length=160, max_length=120)


class TestAutoCorrect:
    """Test single-pass correction."""

    def test_empty_description_generated(self, corrector, keyword):
        result = corrector.auto_correct("", keyword)
        assert "generated_from_keyword" in result.corrections
        assert result.is_valid
        assert keyword in result.corrected.lower()
        assert 120 <= result.length <= 156

    def test_short_description_expanded(self, corrector, keyword):
        result = corrector.auto_correct("Content marketing tips for small teams.", keyword)
        assert "expanded" in result.corrections
        assert result.is_valid

    def test_long_description_trimmed(self, corrector, keyword):
        result = corrector.auto_correct(LONG_DESCRIPTION, keyword)
        assert "trimmed" in result.corrections
        assert result.is_valid
        assert result.corrected.lower().startswith("content marketing")

    def test_missing_keyword_inserted(self, corrector, keyword):
        result = corrector.auto_correct(
            "Practical advice for small teams who want to grow their audience with useful articles, "
            "clear plans and steady publishing habits.",
            keyword,
        )
        assert "inserted_keyword" in result.corrections
        assert result.is_valid

    def test_valid_description_unchanged(self, corrector, sample_content, keyword):
        result = corrector.auto_correct(sample_content.meta_description, keyword)
        assert result.corrections == []
        assert result.corrected == sample_content.meta_description

    def test_whitespace_normalized(self, corrector, sample_content, keyword):
        messy = "  " + sample_content.meta_description.replace(". ", ".   ") + "  "
        result = corrector.auto_correct(messy, keyword)
        assert "normalized_whitespace" in result.corrections
        assert "  " not in result.corrected


class TestCorrectWithRetry:
    """Test retrying and the template fallback."""

    def test_succeeds_on_first_attempt(self, corrector, keyword):
        result = corrector.correct_with_retry("Content marketing tips.", keyword)
        assert result.success
        assert result.attempts == 1
        assert not result.used_fallback
        assert result.attempt_details[0]["is_valid"]

    def test_fallback_when_attempts_fail(self, keyword, monkeypatch):
        corrector = MetaDescriptionCorrector()
        # Force every auto-correction attempt to come back invalid
        original = corrector.auto_correct

        def failing(description, kw, synonyms=None):
            result = original(description, kw, synonyms)
            result.is_valid = False
            return result

        monkeypatch.setattr(corrector, "auto_correct", failing)
        result = corrector.correct_with_retry("", keyword, max_attempts=2)
        assert result.used_fallback
        assert result.attempts == 2
        assert result.success
        assert 120 <= len(result.meta_description) <= 156

    def test_fallback_is_deterministic(self, corrector, keyword):
        assert corrector.fallback(keyword) == corrector.fallback(keyword)
        assert keyword in corrector.fallback(keyword)

    def test_from_rules(self):
        corrector = MetaDescriptionCorrector.from_rules({"min_meta_desc_length": 100, "max_meta_desc_length": 150})
        assert (corrector.min_length, corrector.max_length) == (100, 150)
