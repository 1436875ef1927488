"""
Student Profile

Optional cross-session input to the engine: historical mastery scores
seed the starting difficulty, and the engine records how well each
question type worked for this student.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from socratic_math_tutor.errors import MalformedProfileError
from socratic_math_tutor.session_state import QuestionType

MAX_EFFECTIVENESS_RECORDS = 20


@dataclass
class QuestionEffectivenessRecord:
    """How one tutor question landed with the student."""
    question_type: QuestionType
    effectiveness: float
    comprehension: float
    response_seconds: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class StudentProfile:
    """Student-level learning history."""
    student_id: str
    performance_history: List[float] = field(default_factory=list)
    question_effectiveness: List[QuestionEffectivenessRecord] = field(default_factory=list)

    def mastery_scores(self) -> List[float]:
        return list(self.performance_history)

    def record_effectiveness(self, record: QuestionEffectivenessRecord):
        """Append a record, keeping only the most recent entries."""
        self.question_effectiveness.append(record)
        if len(self.question_effectiveness) > MAX_EFFECTIVENESS_RECORDS:
            del self.question_effectiveness[:-MAX_EFFECTIVENESS_RECORDS]

    def average_effectiveness(self, question_type: QuestionType) -> Optional[float]:
        scores = [
            r.effectiveness for r in self.question_effectiveness
            if r.question_type is question_type
        ]
        if not scores:
            return None
        return sum(scores) / len(scores)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentProfile":
        """
        Build a profile from a plain dict.

        Accepts performance_history as a list of numbers or of
        {"mastery_score": n} dicts.

        Raises:
            MalformedProfileError: if required fields are missing or unreadable
        """
        if not isinstance(data, dict):
            raise MalformedProfileError(f"Profile must be a dict, got {type(data).__name__}")

        missing = [key for key in ("student_id", "performance_history") if key not in data]
        if missing:
            raise MalformedProfileError(
                f"Profile is missing fields: {', '.join(missing)}", missing_fields=missing
            )

        history = data["performance_history"]
        if not isinstance(history, (list, tuple)):
            raise MalformedProfileError("performance_history must be a list")

        try:
            scores = [
                float(entry["mastery_score"]) if isinstance(entry, dict) else float(entry)
                for entry in history
            ]
            records = [
                QuestionEffectivenessRecord(
                    question_type=QuestionType(entry["question_type"]),
                    effectiveness=float(entry["effectiveness"]),
                    comprehension=float(entry.get("comprehension", 0.0)),
                    response_seconds=entry.get("response_seconds"),
                    timestamp=(
                        datetime.fromisoformat(entry["timestamp"])
                        if entry.get("timestamp") else datetime.now()
                    ),
                )
                for entry in data.get("question_effectiveness", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedProfileError(f"Unreadable profile data: {e}") from e

        profile = cls(student_id=str(data["student_id"]), performance_history=scores)
        for record in records:
            profile.record_effectiveness(record)
        return profile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "performance_history": list(self.performance_history),
            "question_effectiveness": [
                {
                    "question_type": r.question_type.value,
                    "effectiveness": r.effectiveness,
                    "comprehension": r.comprehension,
                    "response_seconds": r.response_seconds,
                    "timestamp": r.timestamp.isoformat(),
                }
                for r in self.question_effectiveness
            ],
        }
