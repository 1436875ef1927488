"""
Unit Tests for Understanding Check Scheduling

Tests the four scheduling rules and the check question-type override.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_math_tutor", "src"))

from socratic_math_tutor.understanding_check import UnderstandingCheckScheduler
from socratic_math_tutor.session_state import Assessment, DepthState, QuestionType


UNSURE = Assessment(confidence_level=0.2)
NEUTRAL = Assessment(confidence_level=0.5, depth_of_thinking=2)
MISCONCEIVED = Assessment(confidence_level=0.5, misconceptions=("always",))


class TestUnderstandingCheckScheduler:
    """Test suite for UnderstandingCheckScheduler."""

    @pytest.fixture
    def scheduler(self):
        """Create scheduler instance."""
        return UnderstandingCheckScheduler()

    def test_not_due_at_three_due_at_four(self, scheduler):
        """Interval boundary with a fixed low-confidence assessment."""
        assert scheduler.should_perform_understanding_check(UNSURE, DepthState(), 3) is False
        assert scheduler.should_perform_understanding_check(UNSURE, DepthState(), 4) is True

    def test_two_consecutive_uncertain_turns(self, scheduler):
        decision = scheduler.decide(UNSURE, DepthState(), 2, [0.5, 0.2, 0.2])

        assert decision.due is True
        assert decision.question_type == QuestionType.CLARIFICATION
        assert "uncertain" in decision.reason

    def test_uncertain_rule_needs_gap(self, scheduler):
        assert scheduler.should_perform_understanding_check(
            UNSURE, DepthState(), 1, [0.2, 0.2]
        ) is False

    def test_uncertain_rule_needs_two_low_turns(self, scheduler):
        assert scheduler.should_perform_understanding_check(
            UNSURE, DepthState(), 2, [0.6, 0.2]
        ) is False

    def test_misconception_rule(self, scheduler):
        decision = scheduler.decide(MISCONCEIVED, DepthState(), 2)

        assert decision.due is True
        assert decision.question_type == QuestionType.EVIDENCE
        assert scheduler.should_perform_understanding_check(MISCONCEIVED, DepthState(), 1) is False

    def test_deepen_rule(self, scheduler):
        deepen = DepthState(current_depth=2, max_depth_reached=2, should_deepen_inquiry=True)

        assert scheduler.should_perform_understanding_check(NEUTRAL, deepen, 2) is False
        assert scheduler.should_perform_understanding_check(NEUTRAL, deepen, 3) is True

    def test_not_due(self, scheduler):
        decision = scheduler.decide(NEUTRAL, DepthState(), 1)

        assert decision.due is False
        assert decision.question_type is None

    @pytest.mark.parametrize("assessment,expected", [
        (MISCONCEIVED, QuestionType.EVIDENCE),
        (UNSURE, QuestionType.CLARIFICATION),
        (Assessment(confidence_level=0.9, depth_of_thinking=3), QuestionType.IMPLICATIONS),
        (NEUTRAL, QuestionType.EVIDENCE),
    ])
    def test_check_question_type(self, scheduler, assessment, expected):
        assert scheduler.select_check_question_type(assessment) == expected

    def test_custom_interval(self):
        scheduler = UnderstandingCheckScheduler(interval=2)
        assert scheduler.should_perform_understanding_check(NEUTRAL, DepthState(), 2) is True

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            UnderstandingCheckScheduler(interval=0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
