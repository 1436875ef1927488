"""
Session Analytics

Summarizes a conversation: question-type usage, depth progression,
concepts explored, confidence over time, engagement and rule compliance.
Pure aggregation over the turn list; nothing is cached or mutated.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from socratic_math_tutor.answer_guard import compliance_report
from socratic_math_tutor.session_state import (
    DepthState,
    DifficultyLevel,
    MAX_DEPTH,
    QuestionType,
    Role,
    Turn,
    UnderstandingCheckRecord,
)


DEFAULT_RESPONSE_GAP_SECONDS = 30.0
DEPTH_WEIGHT = 0.6
PACE_WEIGHT = 0.4
OFF_PACE_BONUS = 0.2


@dataclass(frozen=True)
class SessionAnalytics:
    """Snapshot of one session's learning signals."""
    question_type_distribution: Dict[str, int]
    question_types_used: Tuple[QuestionType, ...]
    max_depth: int
    current_depth: int
    depth_trajectory: Tuple[int, ...]
    concepts_explored: Tuple[str, ...]
    confidence_progression: Tuple[float, ...]
    engagement_score: float
    average_response_seconds: Optional[float]
    total_turns: int
    understanding_check_count: int
    compliance_violations: int
    compliance_score: float
    violation_examples: Tuple[str, ...]
    difficulty: DifficultyLevel
    struggling_counter: int

    def to_dict(self) -> dict:
        return {
            "question_type_distribution": dict(self.question_type_distribution),
            "question_types_used": [qt.value for qt in self.question_types_used],
            "max_depth": self.max_depth,
            "current_depth": self.current_depth,
            "depth_trajectory": list(self.depth_trajectory),
            "concepts_explored": list(self.concepts_explored),
            "confidence_progression": list(self.confidence_progression),
            "engagement_score": self.engagement_score,
            "average_response_seconds": self.average_response_seconds,
            "total_turns": self.total_turns,
            "understanding_check_count": self.understanding_check_count,
            "compliance": {
                "violations": self.compliance_violations,
                "score": self.compliance_score,
                "examples": list(self.violation_examples),
            },
            "difficulty": self.difficulty.value,
            "struggling_counter": self.struggling_counter,
        }


class AnalyticsAggregator:
    """Builds SessionAnalytics from engine state."""

    def __init__(self, thoughtful_band: Tuple[float, float] = (5.0, 60.0)):
        low, high = thoughtful_band
        if low > high:
            raise ValueError("thoughtful_band must be (low, high) with low <= high")
        self.thoughtful_band = (low, high)

    def generate(
        self,
        turns: Sequence[Turn],
        depth_state: DepthState,
        check_log: Sequence[UnderstandingCheckRecord],
        difficulty: DifficultyLevel,
        struggling_counter: int,
    ) -> SessionAnalytics:
        """
        Aggregate a session.

        Args:
            turns: Full conversation, system turns included
            depth_state: Current depth state
            check_log: Understanding-check log
            difficulty: Current difficulty level
            struggling_counter: Current struggle counter

        Returns:
            SessionAnalytics
        """
        tutor_turns = [t for t in turns if t.role is Role.TUTOR]
        student_turns = [t for t in turns if t.role is Role.STUDENT]

        distribution: Dict[str, int] = {}
        types_used: List[QuestionType] = []
        for turn in tutor_turns:
            if turn.question_type is None:
                continue
            key = turn.question_type.value
            distribution[key] = distribution.get(key, 0) + 1
            if turn.question_type not in types_used:
                types_used.append(turn.question_type)

        concepts: List[str] = []
        for concept in depth_state.conceptual_connections:
            if concept not in concepts:
                concepts.append(concept)

        average_gap = self._average_response_gap(turns)
        compliance = compliance_report(turns)

        return SessionAnalytics(
            question_type_distribution=distribution,
            question_types_used=tuple(types_used),
            max_depth=depth_state.max_depth_reached,
            current_depth=depth_state.current_depth,
            depth_trajectory=tuple(
                t.depth_level for t in tutor_turns if t.depth_level is not None
            ),
            concepts_explored=tuple(concepts),
            confidence_progression=tuple(
                t.student_confidence for t in student_turns if t.student_confidence is not None
            ),
            engagement_score=self.engagement_score(depth_state.max_depth_reached, average_gap),
            average_response_seconds=average_gap,
            total_turns=sum(1 for t in turns if t.role is not Role.SYSTEM),
            understanding_check_count=len(check_log),
            compliance_violations=compliance.violations,
            compliance_score=compliance.score,
            violation_examples=compliance.examples,
            difficulty=difficulty,
            struggling_counter=struggling_counter,
        )

    def engagement_score(self, max_depth: int, average_gap: Optional[float]) -> float:
        """Depth carries 60% of the score, a thoughtful response pace the other 40%."""
        gap = DEFAULT_RESPONSE_GAP_SECONDS if average_gap is None else average_gap
        low, high = self.thoughtful_band
        pace = 1.0 if low <= gap <= high else OFF_PACE_BONUS
        score = DEPTH_WEIGHT * (max_depth / MAX_DEPTH) + PACE_WEIGHT * pace
        return min(1.0, round(score, 4))

    @staticmethod
    def _average_response_gap(turns: Sequence[Turn]) -> Optional[float]:
        # Seconds from each tutor turn to the student turn right after it
        gaps = []
        for previous, current in zip(turns, turns[1:]):
            if previous.role is Role.TUTOR and current.role is Role.STUDENT:
                gaps.append((current.timestamp - previous.timestamp).total_seconds())
        if not gaps:
            return None
        return sum(gaps) / len(gaps)
