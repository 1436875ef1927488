"""
Unit Tests for SocraticEngine

Tests the state machine, recovery paths, snapshots and bookkeeping.
"""

import asyncio
import random

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "socratic_math_tutor", "src"))

from socratic_math_tutor.config import EngineConfig
from socratic_math_tutor.errors import InvalidStateError
from socratic_math_tutor.session_state import DifficultyLevel, EngineStatus, QuestionType, Role
from socratic_math_tutor.socratic_engine import (
    FALLBACK_OPENING,
    FALLBACK_REPLY,
    QUESTION_SUFFIX,
    SocraticEngine,
)


NEUTRAL_REPLY = "We move the five over"


class BlockingBackend:
    """Backend whose completion never finishes until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()

    async def complete(self, messages, guidance):
        self.started.set()
        await asyncio.Event().wait()


class FlakyBackend:
    """Backend that raises a plain exception on chosen calls."""

    def __init__(self, fail_on=(2,)):
        self.fail_on = set(fail_on)
        self.call_count = 0

    async def complete(self, messages, guidance):
        self.call_count += 1
        if self.call_count in self.fail_on:
            raise ConnectionError("socket reset")
        return "What do you notice?"


class TestSocraticEngine:
    """Test suite for SocraticEngine."""

    @pytest.fixture
    def engine(self, fake_backend, clock):
        """Create engine with deterministic rng and clock."""
        return SocraticEngine(
            "session-1",
            fake_backend,
            config=EngineConfig(),
            rng=random.Random(3),
            clock=clock,
        )

    @pytest.mark.asyncio
    async def test_start_problem(self, engine, fake_backend):
        reply = await engine.start_problem("2x + 5 = 13")

        assert reply.endswith("?")
        assert engine.status is EngineStatus.AWAITING_STUDENT
        assert engine.problem == "2x + 5 = 13"
        assert [t.role for t in engine.turns] == [Role.SYSTEM, Role.TUTOR]
        assert engine.question_type_sequence == (QuestionType.CLARIFICATION,)
        assert "2x + 5 = 13" in fake_backend.calls[0]["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_start_problem_twice(self, engine):
        await engine.start_problem("2x + 5 = 13")
        with pytest.raises(InvalidStateError) as exc_info:
            await engine.start_problem("3x = 9")
        assert exc_info.value.status is EngineStatus.AWAITING_STUDENT
        assert engine.problem == "2x + 5 = 13"

    @pytest.mark.asyncio
    async def test_blank_problem_rejected(self, engine):
        with pytest.raises(ValueError):
            await engine.start_problem("   ")
        assert engine.status is EngineStatus.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_respond_before_start(self, engine):
        with pytest.raises(InvalidStateError) as exc_info:
            await engine.respond_to_student("hello")

        assert exc_info.value.operation == "respond_to_student"
        assert engine.turns == ()
        assert engine.status is EngineStatus.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_reply_polished_with_question(self, engine, fake_backend):
        fake_backend.replies = ["Let's begin", "Nice thinking"]
        opening = await engine.start_problem("2x + 5 = 13")
        reply = await engine.respond_to_student(NEUTRAL_REPLY)

        assert opening == "Let's begin" + QUESTION_SUFFIX
        assert reply == "Nice thinking" + QUESTION_SUFFIX

    @pytest.mark.asyncio
    async def test_opening_fallback(self, engine, fake_backend):
        fake_backend.fail_next = 1
        assert await engine.start_problem("2x + 5 = 13") == FALLBACK_OPENING
        assert engine.status is EngineStatus.AWAITING_STUDENT

    @pytest.mark.asyncio
    async def test_turn_fallback_keeps_state(self, engine, fake_backend):
        await engine.start_problem("2x + 5 = 13")
        fake_backend.fail_next = 1

        reply = await engine.respond_to_student("I don't know")

        assert reply == FALLBACK_REPLY
        assert engine.struggling_counter == 1
        assert engine.turns[-2].role is Role.STUDENT
        assert engine.turns[-1].text == FALLBACK_REPLY
        assert engine.status is EngineStatus.AWAITING_STUDENT

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_falls_back(self, clock):
        engine = SocraticEngine("s", FlakyBackend(fail_on=(2,)), config=EngineConfig(), clock=clock)
        await engine.start_problem("2x + 5 = 13")

        reply = await engine.respond_to_student("I think we subtract")

        assert reply == FALLBACK_REPLY
        assert [t.role for t in engine.turns] == [Role.SYSTEM, Role.TUTOR, Role.STUDENT, Role.TUTOR]
        assert engine.status is EngineStatus.AWAITING_STUDENT

    @pytest.mark.asyncio
    async def test_unexpected_opening_error_falls_back(self, clock):
        engine = SocraticEngine("s", FlakyBackend(fail_on=(1,)), config=EngineConfig(), clock=clock)

        assert await engine.start_problem("2x + 5 = 13") == FALLBACK_OPENING
        assert engine.status is EngineStatus.AWAITING_STUDENT

    @pytest.mark.asyncio
    async def test_direct_answer_flagged(self, engine, fake_backend):
        await engine.start_problem("2x + 5 = 13")
        fake_backend.replies = ["The answer is 4"]

        await engine.respond_to_student(NEUTRAL_REPLY)

        tutor_turn = engine.turns[-1]
        assert tutor_turn.rule_violation is True
        assert tutor_turn.text == "The answer is 4" + QUESTION_SUFFIX
        analytics = engine.generate_analytics()
        assert analytics.compliance_violations == 1
        assert analytics.compliance_score == 50.0

    @pytest.mark.asyncio
    async def test_bare_equation_reply_flagged(self, engine, fake_backend):
        await engine.start_problem("2x + 5 = 13")
        fake_backend.replies = ["x = 4."]

        await engine.respond_to_student(NEUTRAL_REPLY)

        assert engine.turns[-1].text == "x = 4." + QUESTION_SUFFIX
        assert engine.turns[-1].rule_violation is True

    @pytest.mark.asyncio
    async def test_cancellation_keeps_committed_state(self, engine):
        await engine.start_problem("2x + 5 = 13")
        blocking = BlockingBackend()
        engine.backend = blocking

        task = asyncio.ensure_future(engine.respond_to_student("I don't know"))
        await blocking.started.wait()
        assert engine.status is EngineStatus.PROCESSING_TURN
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert engine.status is EngineStatus.AWAITING_STUDENT
        assert engine.turns[-1].role is Role.STUDENT
        assert engine.struggling_counter == 1

    @pytest.mark.asyncio
    async def test_understanding_check_on_interval(self, engine):
        await engine.start_problem("2x + 5 = 13")
        for _ in range(3):
            await engine.respond_to_student(NEUTRAL_REPLY)
        assert engine.understanding_check_count == 0

        await engine.respond_to_student(NEUTRAL_REPLY)

        assert engine.understanding_check_count == 1
        record = engine.understanding_check_log[0]
        assert record.turn_index == 4
        assert record.question_type is QuestionType.EVIDENCE
        assert engine.turns[-1].is_understanding_check is True

    @pytest.mark.asyncio
    async def test_invariants_hold_over_many_turns(self, engine):
        await engine.start_problem("Find the area of a circle with radius 5")
        replies = [
            "I don't know",
            "I'm sure the area depends on the radius because it is squared",
            "You always multiply by two",
            "",
            "What if we imagine the circle as a square, then the area is similar to r squared",
            "maybe",
            "I know it is pi r squared because the formula for area says so",
        ]
        for text in replies:
            await engine.respond_to_student(text)
            depth = engine.depth_state
            assert 1 <= depth.current_depth <= depth.max_depth_reached <= 5
            assert len(engine.understanding_check_log) == engine.understanding_check_count

    @pytest.mark.asyncio
    async def test_malformed_profile_falls_back(self, fake_backend):
        engine = SocraticEngine(
            "s", fake_backend, config=EngineConfig(), profile={"performance_history": [0.1]}
        )
        assert engine.profile is None
        assert engine.difficulty is DifficultyLevel.INTERMEDIATE

    @pytest.mark.asyncio
    async def test_profile_seeds_difficulty_and_records_effectiveness(self, fake_backend, clock):
        engine = SocraticEngine(
            "s",
            fake_backend,
            config=EngineConfig(),
            profile={"student_id": "stu", "performance_history": [0.1, 0.2]},
            clock=clock,
        )
        assert engine.difficulty is DifficultyLevel.BEGINNER

        await engine.start_problem("2x + 5 = 13")
        await engine.respond_to_student("to solve the equation we isolate the variable")

        record = engine.profile.question_effectiveness[-1]
        assert record.effectiveness == pytest.approx(1.0)
        assert record.comprehension == pytest.approx(engine.depth_state.current_depth / 5)
        assert record.response_seconds == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_complete_session(self, engine):
        await engine.start_problem("2x + 5 = 13")
        analytics = engine.complete_session()

        assert engine.status is EngineStatus.COMPLETED
        assert analytics.total_turns == 1
        with pytest.raises(InvalidStateError):
            await engine.respond_to_student("more")

    def test_complete_before_start(self, engine):
        with pytest.raises(InvalidStateError):
            engine.complete_session()

    @pytest.mark.asyncio
    async def test_set_difficulty(self, engine):
        engine.set_difficulty("advanced")
        assert engine.difficulty is DifficultyLevel.ADVANCED
        with pytest.raises(ValueError):
            engine.set_difficulty("expert")

    @pytest.mark.asyncio
    async def test_analytics_idempotent(self, engine):
        await engine.start_problem("2x + 5 = 13")
        await engine.respond_to_student("I don't know")

        assert engine.generate_analytics() == engine.generate_analytics()

    @pytest.mark.asyncio
    async def test_export_conversation(self, engine):
        await engine.start_problem("2x + 5 = 13")
        await engine.respond_to_student("I don't know")

        exported = engine.export_conversation()

        assert [t["role"] for t in exported] == ["tutor", "student", "tutor"]
        assert exported[1]["student_confidence"] == pytest.approx(0.2)
        assert exported[0]["question_type"] == "clarification"

    @pytest.mark.asyncio
    async def test_snapshot_restore(self, engine, fake_backend, clock):
        await engine.start_problem("2x + 5 = 13")
        await engine.respond_to_student("I don't know")
        record = engine.snapshot()

        restored = SocraticEngine("session-1", fake_backend, config=EngineConfig(), clock=clock)
        restored.restore(record)

        assert restored.turns == engine.turns
        assert restored.struggling_counter == 1
        assert restored.status is EngineStatus.AWAITING_STUDENT
        await restored.respond_to_student("I don't know")
        assert restored.struggling_counter == 2

    @pytest.mark.asyncio
    async def test_restore_requires_fresh_engine(self, engine):
        await engine.start_problem("2x + 5 = 13")
        with pytest.raises(InvalidStateError):
            engine.restore(engine.snapshot())

    def test_restore_rejects_incomplete_record(self, engine):
        with pytest.raises(ValueError):
            engine.restore({"turns": ()})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
