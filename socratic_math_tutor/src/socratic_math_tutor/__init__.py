"""Socratic math tutoring dialogue engine"""
from .errors import CompletionBackendError, InvalidStateError, MalformedProfileError, SocraticEngineError
from .session_state import DifficultyLevel, EngineStatus, QuestionType, Role, Turn
from .socratic_engine import SocraticEngine
from .session_manager import InMemorySessionStore, SessionRegistry

__all__ = [
    "SocraticEngine",
    "SessionRegistry",
    "InMemorySessionStore",
    "DifficultyLevel",
    "EngineStatus",
    "QuestionType",
    "Role",
    "Turn",
    "SocraticEngineError",
    "InvalidStateError",
    "CompletionBackendError",
    "MalformedProfileError",
]
