"""
Tests for title generation and uniqueness validation.
"""

import pytest

from seo_compliance_optimizer.titles import (
    DANGLING_WORDS,
    TITLE_TEMPLATES,
    TitleOptimizationEngine,
    TitleRegistry,
    TitleUniquenessValidator,
    title_case,
)


LONG_KEYWORD = "content marketing strategy for small businesses"


@pytest.fixture
def engine() -> TitleOptimizationEngine:
    return TitleOptimizationEngine()


class TestTitleRegistry:
    """Test the in-memory title store."""

    def test_add_and_remove(self):
        registry = TitleRegistry(["First Title"])
        registry.add("Second Title")
        registry.add("Second Title")
        assert len(registry) == 2
        registry.remove("First Title")
        assert "First Title" not in registry
        assert registry.titles() == ["Second Title"]


class TestTitleUniquenessValidator:
    """Test exact and fuzzy matching."""

    def test_identical_titles_are_fully_similar(self):
        validator = TitleUniquenessValidator()
        assert validator.similarity("Content Marketing Guide", "Content Marketing Guide") == 1.0

    def test_unrelated_titles_are_dissimilar(self):
        validator = TitleUniquenessValidator()
        assert validator.similarity("Content Marketing Guide", "Best Hiking Boots for Winter") < 0.3

    def test_exact_match_is_case_insensitive(self):
        validator = TitleUniquenessValidator(TitleRegistry(["Content Marketing Guide"]))
        result = validator.validate_title_uniqueness("content marketing guide")
        assert not result.is_unique
        assert result.exact_match

    def test_near_duplicate_rejected(self):
        validator = TitleUniquenessValidator(TitleRegistry(["The Content Marketing Guide"]))
        result = validator.validate_title_uniqueness("A Content Marketing Guide")
        assert not result.is_unique
        assert result.similar_titles[0][0] == "The Content Marketing Guide"

    def test_extra_titles_and_exclude(self):
        validator = TitleUniquenessValidator(TitleRegistry(["Content Marketing Guide"]))
        assert validator.validate_title_uniqueness("Content Marketing Guide", exclude="Content Marketing Guide").is_unique
        assert not validator.validate_title_uniqueness("SEO Basics", extra_titles=["SEO Basics"]).is_unique

    def test_requirements(self):
        validator = TitleUniquenessValidator(max_length=40)
        assert validator.validate_title_requirements("Content Marketing Basics", "content marketing") == []
        assert validator.validate_title_requirements("", "content marketing") == ["missing"]
        assert "missing_keyword" in validator.validate_title_requirements("Blog Basics", "content marketing")
        problems = validator.validate_title_requirements(
            "Everything You Should Know About Content Marketing", "content marketing"
        )
        assert any(p.startswith("too_long") for p in problems)
        assert "keyword_not_in_first_half" in problems

    def test_content_type_markers(self):
        validator = TitleUniquenessValidator()
        assert "missing_number" in validator.validate_title_requirements(
            "Content Marketing Tips", "content marketing", "listicle"
        )
        assert "missing_how_to_marker" in validator.validate_title_requirements(
            "Content Marketing Basics", "content marketing", "how_to"
        )
        assert validator.validate_title_requirements(
            "Content Marketing: A Step-by-Step Guide", "content marketing", "how_to"
        ) == []

    def test_dangling_word(self):
        validator = TitleUniquenessValidator()
        assert "dangling_word" in validator.validate_title_requirements(
            "Content Marketing Tips for", "content marketing"
        )
        assert "dangling_word" not in validator.validate_title_requirements(
            "Guides on Content Marketing for", "content marketing for"
        )


class TestTitleCase:
    """Test keyword capitalization inside titles."""

    def test_connecting_words_stay_lowercase(self):
        assert title_case(LONG_KEYWORD) == "Content Marketing Strategy for Small Businesses"

    def test_existing_capitals_kept(self):
        assert title_case("SEO for iPhone apps") == "SEO for iPhone Apps"

    def test_keyword_mid_title_is_title_cased(self, engine):
        assert engine.create_title_variation("seo", "listicle", 0) == "5 Seo Tips for Everyone"
        assert engine.create_title_variation("email marketing", "benefits", 0, year=2026) == (
            "Why Email Marketing Matters in 2026"
        )


class TestTitleOptimizationEngine:
    """Test title generation."""

    def test_cut_keeps_how_to_and_drops_trailing_connector(self, engine):
        title = "How to Master Content Marketing Strategy for Small Businesses in 2026"
        assert engine.optimize_title_length(title, LONG_KEYWORD) == (
            "How to Master Content Marketing Strategy for Small Businesses"
        )

    def test_long_keyword_prefers_template_that_fits(self, engine):
        result = engine.generate_optimized_title(LONG_KEYWORD, year=2026)
        assert result.success
        assert result.title == "Content Marketing Strategy for Small Businesses: A Guide"
        assert result.attempts == 2
        assert result.all_attempts[0]["truncated"]

    @pytest.mark.parametrize("content_type", ["how_to", "listicle", "problem_solution"])
    def test_long_keyword_titles_read_cleanly(self, engine, content_type):
        result = engine.generate_optimized_title(LONG_KEYWORD, content_type=content_type, year=2026)
        assert result.success
        assert len(result.title) <= 66
        assert LONG_KEYWORD in result.title.lower()
        assert result.title.split()[-1].lower() not in DANGLING_WORDS
        assert "how master" not in result.title.lower()

    def test_create_title_variation(self, engine):
        assert engine.create_title_variation("content marketing", "how_to", 1) == (
            "Content Marketing: A Step-by-Step Guide"
        )
        assert engine.create_title_variation("content marketing", "how_to", 0, year=2025) == (
            "How to Master Content Marketing in 2025"
        )

    def test_variation_beyond_templates_gets_modifier(self, engine):
        title = engine.create_title_variation("content marketing", "how_to", 4, year=2025)
        assert title == "How to Master Content Marketing in 2025 - Expert Tips"

    def test_unknown_content_type_uses_how_to(self, engine):
        assert engine.create_title_variation("seo", "unknown", 1) == "Seo: A Step-by-Step Guide"

    def test_optimize_title_length(self, engine):
        title = "The Complete Guide to Content Marketing: Everything You Need to Know About Growing Your Audience"
        shortened = engine.optimize_title_length(title, "content marketing")
        assert len(shortened) <= 66
        assert "content marketing" in shortened.lower()

    def test_short_title_untouched(self, engine):
        assert engine.optimize_title_length("Content Marketing Basics", "content marketing") == "Content Marketing Basics"

    def test_generate_registers_title(self, engine):
        result = engine.generate_optimized_title("content marketing", year=2025)
        assert result.success
        assert result.title == "How to Master Content Marketing in 2025"
        assert result.attempts == 1
        assert result.character_count == len(result.title)
        assert result.title in engine.registry

    def test_second_title_is_unique(self, engine):
        first = engine.generate_optimized_title("content marketing", year=2025)
        second = engine.generate_optimized_title("content marketing", year=2025)
        assert second.success
        assert second.title != first.title
        assert second.attempts == 2
        assert len(engine.registry) == 2

    def test_register_false_leaves_registry_alone(self, engine):
        engine.generate_optimized_title("content marketing", register=False)
        assert len(engine.registry) == 0

    def test_missing_keyword(self, engine):
        result = engine.generate_optimized_title("")
        assert result.title is None
        assert not result.success
        assert result.error

    def test_listicle_titles_carry_a_number(self, engine):
        result = engine.generate_optimized_title("content marketing", content_type="listicle")
        assert result.success
        assert any(ch.isdigit() for ch in result.title)

    def test_titles_respect_length_limit(self):
        engine = TitleOptimizationEngine(max_length=40)
        result = engine.generate_optimized_title("content marketing", content_type="benefits", year=2025)
        assert len(result.title) <= 40
        assert "content marketing" in result.title.lower()


class TestContentVariations:
    """Test multi-angle title generation."""

    def test_distinct_variations(self, engine):
        variations = engine.generate_content_variations("content marketing", count=3, year=2025)
        assert len(variations) == 3
        assert len({v.content_type for v in variations}) == 3
        assert len({v.title.lower() for v in variations}) == 3
        for variation in variations:
            assert variation.angle
            assert variation.focus_points
            assert variation.target_audience

    def test_count_capped_by_content_types(self, engine):
        variations = engine.generate_content_variations("content marketing", count=10, year=2025)
        assert len(variations) == len(TITLE_TEMPLATES)

    def test_selected_content_types(self, engine):
        variations = engine.generate_content_variations(
            "content marketing", count=2, content_types=["beginner", "comparison"], year=2025
        )
        assert [v.content_type for v in variations] == ["beginner", "comparison"]
