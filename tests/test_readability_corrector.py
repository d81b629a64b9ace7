"""
Tests for the readability corrector.
"""

from seo_compliance_optimizer.readability_corrector import (
    ReadabilityCorrector,
    capitalize_first,
    decapitalize,
    mid_sentence_capitals,
    passive_to_active,
    split_long_sentence,
)
from seo_compliance_optimizer.text_utils import count_words, plain_text


COMPLIANT_BODY = (
    "<p>However, the team ships updates every week. "
    "Also, customers get new features quickly. "
    "The support staff answers questions fast.</p>"
)


class TestPassiveToActive:
    """Test passive sentence rewriting."""

    def test_rewrite_with_agent(self):
        assert passive_to_active("The guide was written by our editors.") == "Our editors wrote the guide."

    def test_rewrite_without_agent(self):
        assert passive_to_active("The files are stored in the cloud.") == "We have stored the files in the cloud."

    def test_keeps_leading_clause(self):
        rewritten = passive_to_active("However, the results were checked by the team.")
        assert rewritten == "However, the team checked the results."

    def test_words_after_agent_stay_separate(self):
        assert passive_to_active("The results were analyzed by the team in 2020.") == (
            "The team analyzed the results in 2020."
        )

    def test_moved_subject_is_lowercased(self):
        assert passive_to_active("Mistakes are made when teams rush.") == "We have made mistakes when teams rush."

    def test_known_names_keep_their_capital(self):
        assert passive_to_active("Google was praised by analysts.", {"Google"}) == "Analysts praised Google."

    def test_markup_is_left_alone(self):
        assert passive_to_active("The <b>guide</b> was written by our editors.") is None

    def test_active_sentence_returns_none(self):
        assert passive_to_active("Our editors wrote the guide.") is None


class TestSplitLongSentence:
    """Test clause-boundary splitting."""

    def test_split_at_conjunction(self):
        sentence = (
            "The team reviewed every draft of the report carefully over the weekend, "
            "and the editors published the final version on Monday morning."
        )
        assert split_long_sentence(sentence) == (
            "The team reviewed every draft of the report carefully over the weekend. "
            "Also, the editors published the final version on Monday morning."
        )

    def test_short_sentence_not_split(self):
        assert split_long_sentence("Too short to split.") is None

    def test_split_without_boundary_falls_back_to_middle(self):
        sentence = " ".join(["word"] * 30) + "."
        result = split_long_sentence(sentence)
        assert result is not None
        first, second = result.split(". ", 1)
        assert abs(len(first.split()) - len(second.split())) <= 1


class TestCaseHelpers:
    """Test first-letter case helpers."""

    def test_decapitalize_common_word(self):
        assert decapitalize("The guide") == "the guide"

    def test_decapitalize_keeps_proper_nouns(self):
        assert decapitalize("Google ranks pages") == "Google ranks pages"
        assert decapitalize("SEO matters") == "SEO matters"

    def test_mid_sentence_capitals(self):
        names = mid_sentence_capitals(["Teams rely on Google Search daily.", "Search results vary."])
        assert names == frozenset({"Google", "Search"})

    def test_capitalize_first(self):
        assert capitalize_first("our editors") == "Our editors"
        assert capitalize_first("<b>bold</b> start") == "<b>bold</b> start"


class TestReadabilityCorrector:
    """Test the iterative corrector."""

    def test_compliant_text_untouched(self):
        corrector = ReadabilityCorrector()
        result = corrector.correct_readability(COMPLIANT_BODY)
        assert result.corrected_content == COMPLIANT_BODY
        assert result.iterations == 0
        assert result.changes_made == {}
        assert result.final_analysis["is_compliant"]

    def test_fixes_passive_voice(self):
        body = (
            "<p>The guide was written by our editors. However, the results were checked by the team. "
            "Also, our readers share each guide with their friends.</p>"
        )
        result = ReadabilityCorrector().correct_readability(body)
        assert result.final_analysis["is_compliant"]
        assert "Our editors wrote the guide." in result.corrected_content
        assert result.corrected_content.startswith("<p>")
        assert result.corrected_content.endswith("</p>")
        assert result.total_changes >= 2

    def test_adds_transitions(self):
        body = (
            "<p>The team ships updates every week. Customers get new features quickly. "
            "The support staff answers questions fast. Our roadmap stays public for everyone.</p>"
        )
        result = ReadabilityCorrector().correct_readability(body)
        assert "Additionally, customers get new features quickly." in result.corrected_content
        assert result.final_analysis["transition_words"].is_compliant

    def test_splits_long_sentences(self):
        body = (
            "<p>However, the team reviewed every draft of the report carefully over the weekend, "
            "and the editors published the final version on Monday morning.</p>"
        )
        result = ReadabilityCorrector().correct_readability(body)
        assert result.final_analysis["sentence_length"].is_compliant
        assert any(c.startswith("split_sentence") for c in result.changes_made[1])

    def test_options_disable_fixes(self):
        body = "<p>The guide was written by our editors. However, the results were checked by the team.</p>"
        result = ReadabilityCorrector().correct_readability(
            body, options={"fix_passive_voice": False}
        )
        assert result.corrected_content == body

    def test_headings_are_not_rewritten(self):
        body = "<h2>The Guide Was Written By Editors</h2><p>" + COMPLIANT_BODY[3:]
        result = ReadabilityCorrector().correct_readability(body)
        assert result.corrected_content.startswith("<h2>The Guide Was Written By Editors</h2>")

    def test_from_rules(self):
        corrector = ReadabilityCorrector.from_rules({"max_passive_voice": 50.0, "max_sentence_length": 25})
        assert corrector.passive_analyzer.max_passive_percentage == 50.0
        assert corrector.length_analyzer.max_sentence_length == 25
        assert corrector.transition_analyzer.min_transition_percentage == 30.0


class TestCorrectionBounds:
    """Test repeated runs and word-count limits."""

    PASSIVE_BODY = (
        "<p>The content marketing guide was written by our editors. "
        "The results were checked by the whole team. "
        "The plan was approved by the managers.</p>"
    )

    def test_second_run_makes_no_more_changes(self):
        corrector = ReadabilityCorrector()
        first = corrector.correct_readability(self.PASSIVE_BODY)
        second = corrector.correct_readability(first.corrected_content)
        assert first.total_changes == 3
        assert second.total_changes <= first.total_changes

    def test_word_count_never_drops_below_four_fifths(self):
        body = (
            "<p>Reports were written by staff. Budgets were approved by managers. "
            "Plans were drafted by editors. Posts were reviewed by writers. "
            "Charts were drawn by designers.</p>"
        )
        result = ReadabilityCorrector().correct_readability(body)
        assert "Staff wrote reports." in result.corrected_content
        assert count_words(plain_text(result.corrected_content)) >= 0.8 * count_words(plain_text(body))

    def test_budget_spans_rounds(self):
        result = ReadabilityCorrector().correct_readability(self.PASSIVE_BODY)
        before = count_words(plain_text(self.PASSIVE_BODY))
        assert count_words(plain_text(result.corrected_content)) >= 0.8 * before
        assert "The plan was approved by the managers." in result.corrected_content
