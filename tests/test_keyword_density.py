"""
Tests for keyword density calculation and optimization.
"""

import pytest

from seo_compliance_optimizer.keyword_density import KeywordDensityCalculator, KeywordDensityOptimizer
from seo_compliance_optimizer.text_utils import prose_text


def _sparse_body() -> str:
    # 108 prose words, no keyword mentions
    return "<p>" + " ".join(["Writers plan each article around one clear reader goal."] * 12) + "</p>"


def _dense_body() -> str:
    # 80 prose words, ten mentions of "seo"
    return "<p>" + " ".join(["Good seo takes steady work every single week."] * 10) + "</p>"


class TestKeywordDensityCalculator:
    """Test density measurements."""

    @pytest.fixture
    def calculator(self) -> KeywordDensityCalculator:
        return KeywordDensityCalculator()

    def test_calculate_density(self, calculator):
        text = "content marketing works. content marketing grows."
        assert calculator.calculate_density(text, "content marketing") == 33.33

    def test_synonyms_count(self, calculator):
        text = "blogging works and content marketing grows every year right here"
        assert calculator.calculate_density(text, "content marketing", ["blogging"]) == 20.0

    def test_empty_text(self, calculator):
        assert calculator.calculate_density("", "content marketing") == 0.0

    def test_headings_excluded_from_body_density(self, calculator):
        body = "<h2>Content marketing</h2><p>Plain words only here today.</p>"
        report = calculator.analyze(body, "content marketing")
        assert report.body_density == 0.0
        assert report.total_words == 5
        assert report.subheadings_total == 1
        assert report.subheading_density == 100.0

    def test_keyword_and_synonym_split(self, calculator):
        report = calculator.analyze("<p>SEO tips and search optimization ideas.</p>", "seo", ["search optimization"])
        assert report.keyword_occurrences == 1
        assert report.synonym_occurrences == 1
        assert report.total_occurrences == 2

    def test_subheading_usage(self, calculator, sample_body, keyword):
        percentage, with_keyword, total = calculator.subheading_usage(sample_body, keyword)
        assert (percentage, with_keyword, total) == (50.0, 1, 2)


class TestKeywordDensityOptimizer:
    """Test density correction."""

    def test_raises_low_density(self):
        optimizer = KeywordDensityOptimizer()
        result = optimizer.optimize(_sparse_body(), "content marketing")
        assert result.optimized
        assert result.density_before == 0.0
        assert 0.5 <= result.density_after <= 2.5
        assert result.changes_made[0].startswith("inserted_keyword")
        assert result.content.startswith("<p>") and result.content.endswith("</p>")

    def test_word_change_is_bounded(self):
        body = _sparse_body()
        result = KeywordDensityOptimizer().optimize(body, "content marketing")
        before = len(prose_text(body).split())
        after = len(prose_text(result.content).split())
        assert after - before <= before * 0.10

    def test_lowers_high_density(self):
        result = KeywordDensityOptimizer().optimize(_dense_body(), "seo")
        assert result.density_before == 12.5
        assert result.density_after <= 2.5
        assert result.density_after < result.density_before
        # The first mention survives
        assert result.content.startswith("<p>Good seo takes")
        assert all(c.startswith("replaced_keyword") for c in result.changes_made)

    def test_distance_to_target_never_grows(self):
        optimizer = KeywordDensityOptimizer()
        for body in (_sparse_body(), _dense_body(), "<p>Tiny text.</p>"):
            result = optimizer.optimize(body, "seo")
            target = optimizer.default_target
            assert abs(result.density_after - target) <= abs(result.density_before - target)

    def test_reduces_subheading_usage(self):
        body = (
            "<h2>Content Marketing Basics</h2><p>Start with a plan that fits your team.</p>"
            "<h2>Content Marketing Tools</h2><p>Pick tools that your writers enjoy using.</p>"
        )
        result = KeywordDensityOptimizer().optimize(body, "content marketing")
        assert result.subheading_before == 100.0
        assert result.subheading_after == 50.0
        assert "<h2>Content Marketing Basics</h2>" in result.content
        assert "<h2>This Topic Tools</h2>" in result.content

    def test_in_range_content_untouched(self, sample_body, keyword):
        optimizer = KeywordDensityOptimizer(min_density=0.0, max_density=100.0)
        result = optimizer.optimize(sample_body, keyword)
        assert not result.optimized
        assert result.content == sample_body

    def test_empty_keyword_is_noop(self, sample_body):
        result = KeywordDensityOptimizer().optimize(sample_body, "")
        assert not result.optimized
        assert result.content == sample_body

    def test_from_rules(self):
        optimizer = KeywordDensityOptimizer.from_rules({"min_keyword_density": 1.0, "max_keyword_density": 3.0})
        assert optimizer.min_density == 1.0
        assert optimizer.max_density == 3.0
        assert optimizer.default_target == 1.5
