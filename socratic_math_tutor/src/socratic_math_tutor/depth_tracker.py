"""
Depth Tracker

Maintains how deep the dialogue has gone (1-5) and the running list of
concepts the student has touched.
"""

from dataclasses import replace
from typing import Optional

from socratic_math_tutor.concept_lexicon import ConceptLexicon, DEFAULT_LEXICON
from socratic_math_tutor.session_state import Assessment, DepthState, MAX_DEPTH


ADVANCE_MIN_THINKING_DEPTH = 3
DEEPEN_MAX_DEPTH = 4
DEEPEN_MIN_UNDERSTANDING = 0.7


class DepthTracker:
    """
    Pure depth update: takes the current DepthState, returns the next one.

    Depth is a high-water mark. Neither current_depth nor max_depth_reached
    ever decrease within a session.
    """

    def __init__(self, lexicon: Optional[ConceptLexicon] = None):
        self.lexicon = lexicon or DEFAULT_LEXICON

    def update(self, state: DepthState, assessment: Assessment, student_text: str) -> DepthState:
        """
        Compute the depth state after a student turn.

        Args:
            state: Depth state before this turn
            assessment: Assessment of the student's reply
            student_text: The reply itself, used for concept tagging

        Returns:
            New DepthState
        """
        current_depth = state.current_depth
        max_depth = state.max_depth_reached

        if (
            assessment.readiness_for_advancement
            and assessment.depth_of_thinking >= ADVANCE_MIN_THINKING_DEPTH
        ):
            current_depth = min(current_depth + 1, MAX_DEPTH)
            max_depth = max(max_depth, current_depth)

        concepts = tuple(self.lexicon.extract_concepts(student_text or ""))

        return replace(
            state,
            current_depth=current_depth,
            max_depth_reached=max_depth,
            conceptual_connections=state.conceptual_connections + concepts,
            should_deepen_inquiry=(
                current_depth < DEEPEN_MAX_DEPTH
                and assessment.conceptual_understanding > DEEPEN_MIN_UNDERSTANDING
            ),
        )
