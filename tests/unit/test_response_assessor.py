"""
Unit Tests for Response Assessor

Tests confidence, misconception, understanding and depth heuristics.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_math_tutor", "src"))

from socratic_math_tutor.response_assessor import ResponseAssessor
from socratic_math_tutor.concept_lexicon import ConceptLexicon, DEFAULT_LEXICON


class TestResponseAssessor:
    """Test suite for ResponseAssessor."""

    @pytest.fixture
    def assessor(self):
        """Create assessor instance."""
        return ResponseAssessor()

    def test_uncertain_reply(self, assessor):
        """Uncertainty phrases drop confidence to 0.2."""
        assessment = assessor.assess("I don't know")

        assert assessment.confidence_level == pytest.approx(0.2)
        assert assessment.readiness_for_advancement is False
        assert assessment.misconceptions == ()

    def test_curly_apostrophe_is_still_uncertain(self, assessor):
        assert assessor.assess("I don’t know how to start").confidence_level == pytest.approx(0.2)

    def test_certain_reply(self, assessor):
        """Strong certainty phrases raise confidence to 0.9."""
        assessment = assessor.assess("I'm sure we subtract five from both sides first")

        assert assessment.confidence_level == pytest.approx(0.9)
        assert assessment.readiness_for_advancement is True

    def test_uncertainty_wins_over_certainty(self, assessor):
        assessment = assessor.assess("I know the rule but I'm stuck on this step")
        assert assessment.confidence_level == pytest.approx(0.2)

    def test_hedged_reply(self, assessor):
        assessment = assessor.assess("Maybe we should move the five to the other side")
        assert assessment.confidence_level == pytest.approx(0.6)
        # 0.6 is not strictly above the readiness threshold
        assert assessment.readiness_for_advancement is False

    def test_neutral_reply(self, assessor):
        assessment = assessor.assess("We move the five to the other side")
        assert assessment.confidence_level == pytest.approx(0.5)

    def test_short_reply_is_capped(self, assessor):
        """Very short replies without certainty are capped at 0.4."""
        assert assessor.assess("x is 4").confidence_level == pytest.approx(0.4)
        assert assessor.assess("maybe").confidence_level == pytest.approx(0.4)

    def test_short_certain_reply_not_capped(self, assessor):
        assert assessor.assess("I know").confidence_level == pytest.approx(0.9)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_reply(self, assessor, text):
        """Blank input never raises and reads as uncertain."""
        assessment = assessor.assess(text)

        assert assessment.confidence_level == pytest.approx(0.2)
        assert assessment.depth_of_thinking == 1
        assert assessment.conceptual_understanding == 0.0
        assert assessment.readiness_for_advancement is False

    def test_none_reply(self, assessor):
        assert assessor.assess(None).confidence_level == pytest.approx(0.2)

    def test_overgeneralization_flags(self, assessor):
        """Each overgeneralization pattern yields one flag."""
        assessment = assessor.assess("You always divide first and never subtract")

        assert len(assessment.misconceptions) == 2
        assert "always" in assessment.misconceptions[0]
        assert "never" in assessment.misconceptions[1]
        assert assessment.readiness_for_advancement is False

    def test_misconception_blocks_readiness_even_when_certain(self, assessor):
        assessment = assessor.assess("I'm sure you always subtract the bigger number")
        assert assessment.confidence_level == pytest.approx(0.9)
        assert assessment.readiness_for_advancement is False

    def test_word_boundaries(self, assessor):
        """'forever' and 'nevertheless' are not overgeneralizations."""
        assert assessor.assess("Nevertheless it works forever").misconceptions == ()

    def test_conceptual_understanding(self, assessor):
        assert assessor.assess("we solve it").conceptual_understanding == pytest.approx(1 / 3)
        assert assessor.assess(
            "to solve the equation we isolate the variable"
        ).conceptual_understanding == pytest.approx(1.0)

    def test_thinking_depth_accumulates(self, assessor):
        text = (
            "If we subtract 5 from both sides then 2x is 8, because the "
            "equation stays balanced, similar to a scale"
        )
        # long, causal, conditional, comparative
        assert assessor.assess(text).depth_of_thinking == 5

    def test_thinking_depth_caps_at_five(self, assessor):
        text = (
            "What if we suppose that, because the sides are similar to each other, "
            "if one grows then the other must too?"
        )
        assert assessor.assess(text).depth_of_thinking == 5

    def test_custom_lexicon(self):
        lexicon = ConceptLexicon(vocabulary=("slope",))
        assessor = ResponseAssessor(lexicon)
        assert assessor.assess("the slope is steep").conceptual_understanding == pytest.approx(1 / 3)


class TestConceptLexicon:
    """Test suite for ConceptLexicon."""

    def test_extract_concepts_in_table_order(self):
        concepts = DEFAULT_LEXICON.extract_concepts("The area depends on the equations we write")
        assert concepts == ["algebra", "geometry"]

    def test_extract_concepts_whole_words_only(self):
        assert DEFAULT_LEXICON.extract_concepts("meaning") == []
        assert DEFAULT_LEXICON.extract_concepts("the MEAN of the data") == ["statistics"]

    def test_no_duplicates(self):
        assert DEFAULT_LEXICON.extract_concepts("area area perimeter angles") == ["geometry"]

    def test_tables_are_read_only(self):
        from socratic_math_tutor.concept_lexicon import DOMAIN_TERMS

        with pytest.raises(TypeError):
            DOMAIN_TERMS["topology"] = ("knots",)

    def test_terms_for(self):
        assert "numerator" in DEFAULT_LEXICON.terms_for("fractions")
        assert DEFAULT_LEXICON.terms_for("unknown") == ()
        assert len(DEFAULT_LEXICON.domains()) == 6


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
