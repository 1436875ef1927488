"""
Question Type Selector

Chooses the next Socratic question category from the latest assessment,
the current depth and the previously used type.
"""

import random
from typing import Optional

from socratic_math_tutor.session_state import (
    Assessment,
    DepthState,
    QuestionType,
    QUESTION_TYPE_CYCLE,
)


LOW_CONFIDENCE = 0.3
CLARIFICATION_WEIGHT = 0.7
ADVANCED_MIN_DEPTH = 3

ADVANCED_TYPES = (
    QuestionType.IMPLICATIONS,
    QuestionType.PERSPECTIVE,
    QuestionType.META_QUESTIONING,
)

# Checked in order; first keyword hit wins
INITIAL_KEYWORDS = (
    (("solve", "find"), QuestionType.CLARIFICATION),
    (("why", "explain"), QuestionType.EVIDENCE),
    (("compare", "evaluate"), QuestionType.PERSPECTIVE),
)


class QuestionTypeSelector:
    """Rule table with weighted random tie-breaks drawn from an injectable rng."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def select_initial(self, problem: str) -> QuestionType:
        """Pick the opening question type from the wording of the problem."""
        text = (problem or "").lower()
        for keywords, question_type in INITIAL_KEYWORDS:
            if any(k in text for k in keywords):
                return question_type
        return QuestionType.CLARIFICATION

    def select_next(
        self,
        assessment: Assessment,
        depth_state: DepthState,
        previous: Optional[QuestionType],
    ) -> QuestionType:
        """
        Select the next question type.

        Args:
            assessment: Assessment of the latest student reply
            depth_state: Depth state after this turn's update
            previous: Question type used on the previous tutor turn

        Returns:
            QuestionType for the upcoming tutor turn
        """
        # Struggling: mostly clarify, sometimes surface assumptions
        if assessment.confidence_level < LOW_CONFIDENCE:
            if self.rng.random() < CLARIFICATION_WEIGHT:
                return QuestionType.CLARIFICATION
            return QuestionType.ASSUMPTIONS

        if assessment.has_misconceptions:
            return QuestionType.EVIDENCE

        if assessment.readiness_for_advancement and depth_state.current_depth >= ADVANCED_MIN_DEPTH:
            return self.rng.choice(ADVANCED_TYPES)

        return self.next_in_cycle(previous)

    @staticmethod
    def next_in_cycle(previous: Optional[QuestionType]) -> QuestionType:
        if previous is None:
            return QUESTION_TYPE_CYCLE[0]
        index = QUESTION_TYPE_CYCLE.index(previous)
        return QUESTION_TYPE_CYCLE[(index + 1) % len(QUESTION_TYPE_CYCLE)]
