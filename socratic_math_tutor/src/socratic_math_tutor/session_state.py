"""
Session State Data Model

Defines the closed taxonomies (question types, difficulty levels, engine
status) and the records that make up one tutoring session: turns,
per-turn assessments, depth state and the understanding-check log.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


MIN_DEPTH = 1
MAX_DEPTH = 5


class Role(Enum):
    """Author of a turn."""
    SYSTEM = "system"
    STUDENT = "student"
    TUTOR = "tutor"


class QuestionType(Enum):
    """Socratic question categories."""
    CLARIFICATION = "clarification"        # "What do you mean by...?"
    ASSUMPTIONS = "assumptions"            # "What assumptions are you making?"
    EVIDENCE = "evidence"                  # "What evidence supports this?"
    PERSPECTIVE = "perspective"            # "How might someone disagree?"
    IMPLICATIONS = "implications"          # "What might happen if...?"
    META_QUESTIONING = "meta_questioning"  # "Why is this question important?"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# Default progression when no rule fires
QUESTION_TYPE_CYCLE: Tuple[QuestionType, ...] = (
    QuestionType.CLARIFICATION,
    QuestionType.ASSUMPTIONS,
    QuestionType.EVIDENCE,
    QuestionType.PERSPECTIVE,
    QuestionType.IMPLICATIONS,
    QuestionType.META_QUESTIONING,
)


class DifficultyLevel(Enum):
    """Teaching difficulty, totally ordered beginner < intermediate < advanced."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def order(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    def step_up(self) -> "DifficultyLevel":
        """Next level up, or self at the top."""
        return _DIFFICULTY_ORDER[min(self.order + 1, len(_DIFFICULTY_ORDER) - 1)]

    def step_down(self) -> "DifficultyLevel":
        """Next level down, or self at the bottom."""
        return _DIFFICULTY_ORDER[max(self.order - 1, 0)]

    def __lt__(self, other):
        if not isinstance(other, DifficultyLevel):
            return NotImplemented
        return self.order < other.order


_DIFFICULTY_ORDER = (
    DifficultyLevel.BEGINNER,
    DifficultyLevel.INTERMEDIATE,
    DifficultyLevel.ADVANCED,
)


class EngineStatus(Enum):
    """Lifecycle of a SocraticEngine."""
    UNINITIALIZED = "uninitialized"
    PROBLEM_STARTED = "problem_started"
    AWAITING_STUDENT = "awaiting_student"
    PROCESSING_TURN = "processing_turn"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Assessment:
    """Heuristic reading of a single student reply."""
    confidence_level: float
    misconceptions: Tuple[str, ...] = ()
    readiness_for_advancement: bool = False
    conceptual_understanding: float = 0.0
    depth_of_thinking: int = 1

    @property
    def has_misconceptions(self) -> bool:
        return len(self.misconceptions) > 0


@dataclass(frozen=True)
class DepthState:
    """How far the dialogue has progressed into conceptual reasoning."""
    current_depth: int = MIN_DEPTH
    max_depth_reached: int = MIN_DEPTH
    conceptual_connections: Tuple[str, ...] = ()
    should_deepen_inquiry: bool = False

    def __post_init__(self):
        if not MIN_DEPTH <= self.current_depth <= self.max_depth_reached <= MAX_DEPTH:
            raise ValueError(
                f"Depth invariant violated: current={self.current_depth}, "
                f"max={self.max_depth_reached}"
            )


@dataclass(frozen=True)
class Turn:
    """One immutable entry in the conversation."""
    role: Role
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    question_type: Optional[QuestionType] = None
    depth_level: Optional[int] = None
    student_confidence: Optional[float] = None
    targeted_concepts: Tuple[str, ...] = ()
    is_understanding_check: bool = False
    rule_violation: bool = False

    def to_chat_message(self) -> dict:
        """Map to the role vocabulary used by chat completion APIs."""
        role = {
            Role.SYSTEM: "system",
            Role.STUDENT: "user",
            Role.TUTOR: "assistant",
        }[self.role]
        return {"role": role, "content": self.text}


@dataclass(frozen=True)
class UnderstandingCheckRecord:
    """Entry in the append-only understanding-check log."""
    turn_index: int
    question_type: QuestionType
    student_confidence_at_check: float
