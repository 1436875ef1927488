"""
Automatic Difficulty Control

Adjusts teaching difficulty from a rolling window of student confidence
and a decaying struggle counter. A single noisy turn cannot flip the level;
the signal has to be sustained across the window.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from socratic_math_tutor.session_state import Assessment, DifficultyLevel


@dataclass
class DifficultyAdjustment:
    """Result of difficulty adjustment check."""
    should_adjust: bool
    direction: Optional[str]  # "increase", "decrease", or None
    reason: str
    new_difficulty: Optional[DifficultyLevel] = None


@dataclass
class DifficultyUpdate:
    """Struggle counter and difficulty after one student turn."""
    struggling_counter: int
    difficulty: DifficultyLevel
    adjustment: DifficultyAdjustment


class DifficultyController:
    """
    Raises or lowers difficulty based on recent student performance.

    Algorithm:
    - Struggle signal (confidence < 0.3 or misconceptions) bumps a counter,
      any other turn decays it by one
    - Counter > 2, or avg confidence < 0.3 with misconceptions -> step down
    - Avg confidence > 0.7, thinking depth >= 3, no misconceptions and
      dialogue depth >= 3 -> step up
    - Otherwise keep the current level
    """

    # Thresholds
    STRUGGLE_CONFIDENCE = 0.3
    STRUGGLE_COUNTER_LIMIT = 2
    LOW_AVG_CONFIDENCE = 0.3
    HIGH_AVG_CONFIDENCE = 0.7
    MIN_THINKING_DEPTH = 3
    MIN_DIALOGUE_DEPTH = 3

    # Historical mastery -> initial level
    LOW_MASTERY = 0.4
    HIGH_MASTERY = 0.7

    def __init__(self, window: int = 5):
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window

    def is_struggling(self, assessment: Assessment) -> bool:
        return (
            assessment.confidence_level < self.STRUGGLE_CONFIDENCE
            or assessment.has_misconceptions
        )

    def update_struggling(self, counter: int, assessment: Assessment) -> int:
        """Increment on a struggle signal, otherwise decay toward zero."""
        if self.is_struggling(assessment):
            return counter + 1
        return max(0, counter - 1)

    def rolling_average(self, confidences: Sequence[float]) -> Optional[float]:
        recent = list(confidences)[-self.window:]
        if not recent:
            return None
        return sum(recent) / len(recent)

    def check_adjustment(
        self,
        current_difficulty: DifficultyLevel,
        struggling_counter: int,
        recent_confidences: Sequence[float],
        assessment: Assessment,
        current_depth: int,
    ) -> DifficultyAdjustment:
        """
        Check if difficulty should be adjusted.

        Args:
            current_difficulty: Current difficulty level
            struggling_counter: Struggle counter, already updated for this turn
            recent_confidences: Student confidences in order, most recent last
            assessment: Assessment of the latest reply
            current_depth: Dialogue depth after this turn's depth update

        Returns:
            DifficultyAdjustment with recommendation
        """
        avg_confidence = self.rolling_average(recent_confidences)
        if avg_confidence is None:
            avg_confidence = assessment.confidence_level

        has_misconceptions = assessment.has_misconceptions

        # Check for decrease
        if struggling_counter > self.STRUGGLE_COUNTER_LIMIT or (
            avg_confidence < self.LOW_AVG_CONFIDENCE and has_misconceptions
        ):
            new_difficulty = self._lower_difficulty(current_difficulty)
            if new_difficulty != current_difficulty:
                return DifficultyAdjustment(
                    should_adjust=True,
                    direction="decrease",
                    reason=(
                        f"Sustained struggle (counter={struggling_counter}, "
                        f"avg={avg_confidence:.2f})"
                    ),
                    new_difficulty=new_difficulty,
                )
            return DifficultyAdjustment(
                should_adjust=False,
                direction=None,
                reason="Struggling but already at minimum difficulty",
            )

        # Check for increase
        if (
            avg_confidence > self.HIGH_AVG_CONFIDENCE
            and assessment.depth_of_thinking >= self.MIN_THINKING_DEPTH
            and not has_misconceptions
            and current_depth >= self.MIN_DIALOGUE_DEPTH
        ):
            new_difficulty = self._raise_difficulty(current_difficulty)
            if new_difficulty != current_difficulty:
                return DifficultyAdjustment(
                    should_adjust=True,
                    direction="increase",
                    reason=(
                        f"High performance (avg={avg_confidence:.2f}) "
                        f"at depth {current_depth}"
                    ),
                    new_difficulty=new_difficulty,
                )
            return DifficultyAdjustment(
                should_adjust=False,
                direction=None,
                reason="Thriving but already at maximum difficulty",
            )

        # No adjustment needed
        return DifficultyAdjustment(
            should_adjust=False,
            direction=None,
            reason=f"Performance stable (avg={avg_confidence:.2f}, counter={struggling_counter})",
        )

    def update(
        self,
        current_difficulty: DifficultyLevel,
        struggling_counter: int,
        recent_confidences: Sequence[float],
        assessment: Assessment,
        current_depth: int,
    ) -> DifficultyUpdate:
        """Apply the struggle counter update, then the level transition rules."""
        counter = self.update_struggling(struggling_counter, assessment)
        adjustment = self.check_adjustment(
            current_difficulty, counter, recent_confidences, assessment, current_depth
        )
        difficulty = current_difficulty
        if adjustment.should_adjust and adjustment.new_difficulty:
            difficulty = adjustment.new_difficulty
        return DifficultyUpdate(
            struggling_counter=counter,
            difficulty=difficulty,
            adjustment=adjustment,
        )

    def initial_difficulty(self, mastery_scores: Sequence[float]) -> DifficultyLevel:
        """
        Seed difficulty from a student's historical mastery average.

        Returns intermediate when there is no history.
        """
        if not mastery_scores:
            return DifficultyLevel.INTERMEDIATE
        average = sum(mastery_scores) / len(mastery_scores)
        if average < self.LOW_MASTERY:
            return DifficultyLevel.BEGINNER
        if average > self.HIGH_MASTERY:
            return DifficultyLevel.ADVANCED
        return DifficultyLevel.INTERMEDIATE

    def _raise_difficulty(self, current: DifficultyLevel) -> DifficultyLevel:
        """Raise difficulty level."""
        return current.step_up()

    def _lower_difficulty(self, current: DifficultyLevel) -> DifficultyLevel:
        """Lower difficulty level."""
        return current.step_down()
