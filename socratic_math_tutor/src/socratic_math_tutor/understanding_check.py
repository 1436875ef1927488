"""
Understanding Check Scheduling

Decides, each student turn, whether the next tutor turn should be a
comprehension probe instead of ordinary progression, and which question
type that probe uses.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from socratic_math_tutor.session_state import Assessment, DepthState, QuestionType


UNCERTAIN_CONFIDENCE = 0.4
MIN_GAP = 2
DEEPEN_GAP = 3
DEEP_THINKING = 3


@dataclass
class CheckDecision:
    """Outcome of the scheduling rules for one turn."""
    due: bool
    reason: str
    question_type: Optional[QuestionType] = None


class UnderstandingCheckScheduler:
    """
    First matching rule wins:
    1. interval reached since the last check
    2. uncertain now and on the two latest recorded turns
    3. misconceptions present
    4. inquiry is ready to deepen
    """

    def __init__(self, interval: int = 4):
        if interval < 1:
            raise ValueError("interval must be at least 1")
        self.interval = interval

    def should_perform_understanding_check(
        self,
        assessment: Assessment,
        depth_state: DepthState,
        turns_since_last_check: int,
        recent_confidences: Sequence[float] = (),
    ) -> bool:
        return self._due_reason(
            assessment, depth_state, turns_since_last_check, recent_confidences
        ) is not None

    def decide(
        self,
        assessment: Assessment,
        depth_state: DepthState,
        turns_since_last_check: int,
        recent_confidences: Sequence[float] = (),
    ) -> CheckDecision:
        """
        Run the scheduling rules.

        Args:
            assessment: Assessment of the latest student reply
            depth_state: Depth state after this turn's update
            turns_since_last_check: Student turns since the last check
            recent_confidences: Recorded student confidences, most recent last

        Returns:
            CheckDecision; question_type is set only when a check is due
        """
        reason = self._due_reason(
            assessment, depth_state, turns_since_last_check, recent_confidences
        )
        if reason is None:
            return CheckDecision(due=False, reason="no check due")
        return CheckDecision(
            due=True,
            reason=reason,
            question_type=self.select_check_question_type(assessment),
        )

    def select_check_question_type(self, assessment: Assessment) -> QuestionType:
        if assessment.has_misconceptions:
            return QuestionType.EVIDENCE
        if assessment.confidence_level < UNCERTAIN_CONFIDENCE:
            return QuestionType.CLARIFICATION
        if assessment.depth_of_thinking >= DEEP_THINKING:
            return QuestionType.IMPLICATIONS
        return QuestionType.EVIDENCE

    def _due_reason(
        self,
        assessment: Assessment,
        depth_state: DepthState,
        turns_since: int,
        recent_confidences: Sequence[float],
    ) -> Optional[str]:
        if turns_since >= self.interval:
            return f"{turns_since} turns since last check"

        if assessment.confidence_level < UNCERTAIN_CONFIDENCE and turns_since >= MIN_GAP:
            latest = list(recent_confidences)[-2:]
            if len(latest) == 2 and all(c < UNCERTAIN_CONFIDENCE for c in latest):
                return "uncertain on two consecutive turns"

        if assessment.has_misconceptions and turns_since >= MIN_GAP:
            return "misconception detected"

        if depth_state.should_deepen_inquiry and turns_since >= DEEPEN_GAP:
            return "ready to deepen inquiry"

        return None
