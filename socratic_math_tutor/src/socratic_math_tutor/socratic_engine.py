"""
Socratic Dialogue Engine

Orchestrates one tutoring session:
1. Start a problem and ask an opening question
2. For each student reply: assess it, update depth, struggle and difficulty,
   decide on an understanding check, pick the question type
3. Ask the completion backend for the tutor's next question
4. Guard the reply against direct answers and record it

All state changes for a student turn are committed before the backend is
awaited, so a failed, timed-out or cancelled completion never leaves the
session half-updated.
"""

import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from socratic_math_tutor.analytics import AnalyticsAggregator, SessionAnalytics
from socratic_math_tutor.answer_guard import contains_direct_answer
from socratic_math_tutor.completion_client import CompletionBackend
from socratic_math_tutor.concept_lexicon import DEFAULT_LEXICON
from socratic_math_tutor.config import EngineConfig
from socratic_math_tutor.depth_tracker import DepthTracker
from socratic_math_tutor.difficulty_controller import DifficultyController
from socratic_math_tutor.errors import InvalidStateError, MalformedProfileError
from socratic_math_tutor.logger import get_logger
from socratic_math_tutor.prompt_composer import GuidanceContext, PromptComposer
from socratic_math_tutor.question_selector import QuestionTypeSelector
from socratic_math_tutor.response_assessor import ResponseAssessor
from socratic_math_tutor.session_state import (
    DepthState,
    DifficultyLevel,
    EngineStatus,
    QuestionType,
    Role,
    Turn,
    UnderstandingCheckRecord,
    MAX_DEPTH,
)
from socratic_math_tutor.student_profile import QuestionEffectivenessRecord, StudentProfile
from socratic_math_tutor.understanding_check import UnderstandingCheckScheduler

logger = get_logger(__name__)

FALLBACK_REPLY = "That's interesting — can you tell me more about your reasoning?"
FALLBACK_OPENING = (
    "I'm excited to explore this problem with you! "
    "What's your initial understanding of what we're looking for?"
)
QUESTION_SUFFIX = " What do you think?"

SNAPSHOT_FIELDS = (
    "session_id",
    "problem",
    "status",
    "turns",
    "depth_state",
    "difficulty",
    "struggling_counter",
    "understanding_check_log",
    "last_check_turn",
)


class SocraticEngine:
    """
    State machine for one session:
    UNINITIALIZED -> PROBLEM_STARTED -> AWAITING_STUDENT <-> PROCESSING_TURN -> COMPLETED
    """

    def __init__(
        self,
        session_id: str,
        backend: CompletionBackend,
        *,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        profile: Union[StudentProfile, Dict[str, Any], None] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_id = session_id
        self.backend = backend
        self.config = config or EngineConfig.from_env()
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now

        self.lexicon = DEFAULT_LEXICON
        self.assessor = ResponseAssessor(self.lexicon)
        self.depth_tracker = DepthTracker(self.lexicon)
        self.difficulty_controller = DifficultyController(window=self.config.difficulty_window)
        self.check_scheduler = UnderstandingCheckScheduler(
            interval=self.config.understanding_check_interval
        )
        self.selector = QuestionTypeSelector(self.rng)
        self.composer = PromptComposer(self.rng)
        self.aggregator = AnalyticsAggregator()

        self.profile = self._load_profile(profile)
        initial = self.difficulty_controller.initial_difficulty(
            self.profile.mastery_scores() if self.profile else []
        )

        self._status = EngineStatus.UNINITIALIZED
        self._problem: Optional[str] = None
        self._system_prompt: Optional[str] = None
        self._turns: List[Turn] = []
        self._depth_state = DepthState()
        self._difficulty = initial
        self._struggling_counter = 0
        self._check_log: List[UnderstandingCheckRecord] = []
        self._last_check_turn = 0
        self._last_question_type: Optional[QuestionType] = None

    def _load_profile(self, profile) -> Optional[StudentProfile]:
        if profile is None or isinstance(profile, StudentProfile):
            return profile
        try:
            return StudentProfile.from_dict(profile)
        except MalformedProfileError as e:
            logger.warning(
                f"⚠️ [SocraticEngine] Ignoring malformed profile for session {self.session_id}: {e}"
            )
            return None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def problem(self) -> Optional[str]:
        return self._problem

    @property
    def difficulty(self) -> DifficultyLevel:
        return self._difficulty

    @property
    def depth_state(self) -> DepthState:
        return self._depth_state

    @property
    def struggling_counter(self) -> int:
        return self._struggling_counter

    @property
    def understanding_check_log(self) -> Tuple[UnderstandingCheckRecord, ...]:
        return tuple(self._check_log)

    @property
    def understanding_check_count(self) -> int:
        return len(self._check_log)

    @property
    def question_type_sequence(self) -> Tuple[QuestionType, ...]:
        return tuple(
            t.question_type for t in self._turns
            if t.role is Role.TUTOR and t.question_type is not None
        )

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def student_turn_count(self) -> int:
        return sum(1 for t in self._turns if t.role is Role.STUDENT)

    # ------------------------------------------------------------------
    # Dialogue
    # ------------------------------------------------------------------

    async def start_problem(self, problem: str) -> str:
        """
        Begin a session on a problem and return the tutor's opening question.

        Args:
            problem: Problem statement shown to the student

        Returns:
            Opening tutor question

        Raises:
            InvalidStateError: if a problem was already started
            ValueError: if the problem is blank
        """
        if self._status is not EngineStatus.UNINITIALIZED:
            raise InvalidStateError("start_problem", self._status)
        if not problem or not problem.strip():
            raise ValueError("problem must be a non-empty string")

        problem = problem.strip()
        concepts = self.lexicon.extract_concepts(problem)
        system_prompt = self.composer.build_system_prompt(
            problem, concepts, self._difficulty.value
        )

        self._problem = problem
        self._system_prompt = system_prompt
        self._turns.append(Turn(role=Role.SYSTEM, text=system_prompt, timestamp=self.clock()))
        self._status = EngineStatus.PROBLEM_STARTED

        question_type = self.selector.select_initial(problem)
        instruction = self.composer.build_opening_instruction(question_type)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": f"I need help with this problem: {problem}"},
            {"role": "system", "content": instruction},
        ]

        try:
            reply = await self.backend.complete(messages, instruction)
        except Exception as e:
            logger.error(f"❌ [SocraticEngine] Opening question failed for session {self.session_id}", error=e)
            reply = FALLBACK_OPENING
        except BaseException:
            # Cancelled before anything was asked; allow the caller to start again
            self._turns.clear()
            self._problem = None
            self._system_prompt = None
            self._status = EngineStatus.UNINITIALIZED
            raise

        reply = self._append_tutor_turn(
            reply, FALLBACK_OPENING, question_type, tuple(concepts), is_check=False
        )
        self._status = EngineStatus.AWAITING_STUDENT

        logger.info(
            f"🎯 [SocraticEngine] Session {self.session_id} started "
            f"({question_type.value}, {self._difficulty.value})"
        )
        return reply

    async def respond_to_student(self, text: str) -> str:
        """
        Process one student reply and return the tutor's next question.

        Args:
            text: Student's free-text reply; any string is accepted

        Returns:
            Tutor question

        Raises:
            InvalidStateError: if the engine is not awaiting a student reply
        """
        if self._status is not EngineStatus.AWAITING_STUDENT:
            raise InvalidStateError("respond_to_student", self._status)

        text = text or ""
        now = self.clock()

        # Compute everything into locals first
        assessment = self.assessor.assess(text)
        depth_state = self.depth_tracker.update(self._depth_state, assessment, text)
        confidences = self._student_confidences() + [assessment.confidence_level]
        difficulty_update = self.difficulty_controller.update(
            self._difficulty,
            self._struggling_counter,
            confidences,
            assessment,
            depth_state.current_depth,
        )
        student_turn_number = self.student_turn_count + 1
        decision = self.check_scheduler.decide(
            assessment,
            depth_state,
            student_turn_number - self._last_check_turn,
            confidences,
        )
        if decision.due:
            question_type = decision.question_type
        else:
            question_type = self.selector.select_next(
                assessment, depth_state, self._last_question_type
            )
        student_concepts = tuple(self.lexicon.extract_concepts(text))
        response_seconds = self._seconds_since_last_tutor_turn(now)

        # Commit
        self._turns.append(Turn(
            role=Role.STUDENT,
            text=text,
            timestamp=now,
            depth_level=depth_state.current_depth,
            student_confidence=assessment.confidence_level,
            targeted_concepts=student_concepts,
        ))
        self._depth_state = depth_state
        self._struggling_counter = difficulty_update.struggling_counter
        self._difficulty = difficulty_update.difficulty
        if decision.due:
            self._check_log.append(UnderstandingCheckRecord(
                turn_index=student_turn_number,
                question_type=question_type,
                student_confidence_at_check=assessment.confidence_level,
            ))
            self._last_check_turn = student_turn_number
        self._status = EngineStatus.PROCESSING_TURN

        if difficulty_update.adjustment.should_adjust:
            logger.info(
                f"📊 [SocraticEngine] Difficulty {difficulty_update.adjustment.direction}d to "
                f"{self._difficulty.value}: {difficulty_update.adjustment.reason}"
            )

        guidance = self.composer.build_guidance(GuidanceContext(
            question_type=question_type,
            difficulty=self._difficulty,
            assessment=assessment,
            struggling_counter=self._struggling_counter,
            should_deepen_inquiry=depth_state.should_deepen_inquiry,
            is_understanding_check=decision.due,
            current_depth=depth_state.current_depth,
            student_text=text,
        ))
        messages = self.composer.build_messages(self._system_prompt, self._turns, guidance)

        try:
            reply = await self.backend.complete(messages, guidance)
        except Exception as e:
            logger.error(f"❌ [SocraticEngine] Completion failed for session {self.session_id}", error=e)
            reply = FALLBACK_REPLY
        except BaseException:
            # Cancelled; committed state stays and this exchange gets no tutor turn
            self._status = EngineStatus.AWAITING_STUDENT
            raise

        targeted = student_concepts or tuple(self.lexicon.extract_concepts(self._problem or ""))
        reply = self._append_tutor_turn(
            reply, FALLBACK_REPLY, question_type, targeted, is_check=decision.due
        )

        if self.profile is not None:
            self.profile.record_effectiveness(QuestionEffectivenessRecord(
                question_type=question_type,
                effectiveness=assessment.conceptual_understanding,
                comprehension=depth_state.current_depth / MAX_DEPTH,
                response_seconds=response_seconds,
                timestamp=now,
            ))

        self._status = EngineStatus.AWAITING_STUDENT

        logger.section(f"Turn {student_turn_number} ({self.session_id})", {
            "confidence": assessment.confidence_level,
            "misconceptions": list(assessment.misconceptions),
            "depth": depth_state.current_depth,
            "difficulty": self._difficulty.value,
            "struggling_counter": self._struggling_counter,
            "question_type": question_type.value,
            "understanding_check": decision.reason if decision.due else "no",
        })
        return reply

    def complete_session(self) -> SessionAnalytics:
        """Close the session and return its final analytics."""
        if self._status in (EngineStatus.UNINITIALIZED, EngineStatus.PROCESSING_TURN):
            raise InvalidStateError("complete_session", self._status)
        if self._status is not EngineStatus.COMPLETED:
            self._status = EngineStatus.COMPLETED
            logger.info(
                f"✅ [SocraticEngine] Session {self.session_id} completed after "
                f"{self.student_turn_count} student turns"
            )
        return self.generate_analytics()

    def set_difficulty(self, level: Union[DifficultyLevel, str]):
        """Manual difficulty override."""
        if self._status is EngineStatus.COMPLETED:
            raise InvalidStateError("set_difficulty", self._status)
        new_level = level if isinstance(level, DifficultyLevel) else DifficultyLevel(level)
        if new_level is not self._difficulty:
            logger.info(
                f"📊 [SocraticEngine] Difficulty manually set {self._difficulty.value} -> {new_level.value}"
            )
        self._difficulty = new_level

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def generate_analytics(self) -> SessionAnalytics:
        return self.aggregator.generate(
            self._turns,
            self._depth_state,
            self._check_log,
            self._difficulty,
            self._struggling_counter,
        )

    def export_conversation(self) -> List[Dict[str, Any]]:
        """Non-system turns as plain dicts, oldest first."""
        exported = []
        for turn in self._turns:
            if turn.role is Role.SYSTEM:
                continue
            exported.append({
                "role": turn.role.value,
                "text": turn.text,
                "timestamp": turn.timestamp.isoformat(),
                "question_type": turn.question_type.value if turn.question_type else None,
                "depth_level": turn.depth_level,
                "student_confidence": turn.student_confidence,
                "targeted_concepts": list(turn.targeted_concepts),
                "is_understanding_check": turn.is_understanding_check,
                "rule_violation": turn.rule_violation,
            })
        return exported

    def snapshot(self) -> Dict[str, Any]:
        """In-memory record of the session, suitable for SessionStore.save()."""
        status = self._status
        if status is EngineStatus.PROCESSING_TURN:
            status = EngineStatus.AWAITING_STUDENT
        return {
            "session_id": self.session_id,
            "problem": self._problem,
            "status": status,
            "turns": tuple(self._turns),
            "depth_state": self._depth_state,
            "difficulty": self._difficulty,
            "struggling_counter": self._struggling_counter,
            "understanding_check_log": tuple(self._check_log),
            "last_check_turn": self._last_check_turn,
        }

    def restore(self, record: Dict[str, Any]):
        """
        Load a snapshot into a fresh engine.

        Raises:
            InvalidStateError: if this engine has already started a problem
            ValueError: if the record is missing fields
        """
        if self._status is not EngineStatus.UNINITIALIZED:
            raise InvalidStateError("restore", self._status)
        missing = [key for key in SNAPSHOT_FIELDS if key not in record]
        if missing:
            raise ValueError(f"Snapshot is missing fields: {', '.join(missing)}")

        turns = list(record["turns"])
        system_turns = [t for t in turns if t.role is Role.SYSTEM]
        tutor_turns = [t for t in turns if t.role is Role.TUTOR]

        self._problem = record["problem"]
        self._turns = turns
        self._system_prompt = system_turns[0].text if system_turns else None
        self._depth_state = record["depth_state"]
        self._difficulty = record["difficulty"]
        self._struggling_counter = record["struggling_counter"]
        self._check_log = list(record["understanding_check_log"])
        self._last_check_turn = record["last_check_turn"]
        self._last_question_type = tutor_turns[-1].question_type if tutor_turns else None
        self._status = record["status"]
        logger.info(
            f"💾 [SocraticEngine] Restored session {self.session_id} "
            f"({len(turns)} turns, {self._status.value})"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append_tutor_turn(
        self,
        raw_reply: Optional[str],
        fallback: str,
        question_type: QuestionType,
        concepts: Tuple[str, ...],
        is_check: bool,
    ) -> str:
        """Guard, polish and record a backend reply; returns the text shown to the student."""
        # Judge the raw text; the appended suffix would hide a bare answer
        violation = contains_direct_answer(raw_reply or "")
        if violation:
            logger.warning(
                f"⚠️ [SocraticEngine] Tutor reply looks like a direct answer "
                f"in session {self.session_id}: {raw_reply!r}"
            )
        reply = self._polish(raw_reply, fallback)
        self._turns.append(Turn(
            role=Role.TUTOR,
            text=reply,
            timestamp=self.clock(),
            question_type=question_type,
            depth_level=self._depth_state.current_depth,
            targeted_concepts=concepts,
            is_understanding_check=is_check,
            rule_violation=violation,
        ))
        self._last_question_type = question_type
        return reply

    @staticmethod
    def _polish(reply: Optional[str], fallback: str) -> str:
        """Ensure the reply is non-empty and ends with a question."""
        reply = (reply or "").strip()
        if not reply:
            return fallback
        if not reply.endswith("?"):
            reply += QUESTION_SUFFIX
        return reply

    def _student_confidences(self) -> List[float]:
        return [
            t.student_confidence for t in self._turns
            if t.role is Role.STUDENT and t.student_confidence is not None
        ]

    def _seconds_since_last_tutor_turn(self, now: datetime) -> Optional[float]:
        for turn in reversed(self._turns):
            if turn.role is Role.TUTOR:
                return (now - turn.timestamp).total_seconds()
        return None
