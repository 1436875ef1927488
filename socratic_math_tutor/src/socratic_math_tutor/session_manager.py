"""
Session Registry and Persistence

Keeps live engines by session id, serializes concurrent calls for the
same session, and saves an engine snapshot after every turn. The store
is pluggable; InMemorySessionStore is the default.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from socratic_math_tutor.completion_client import CompletionBackend
from socratic_math_tutor.socratic_engine import SocraticEngine

logger = logging.getLogger(__name__)

SessionRecord = Dict[str, Any]


class SessionStore(Protocol):
    """Where engine snapshots live between turns."""

    def save(self, session_id: str, record: SessionRecord) -> None:
        ...

    def load(self, session_id: str) -> Optional[SessionRecord]:
        ...


class InMemorySessionStore:
    """Dict-backed SessionStore."""

    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}

    def save(self, session_id: str, record: SessionRecord) -> None:
        self._records[session_id] = dict(record)

    def load(self, session_id: str) -> Optional[SessionRecord]:
        record = self._records.get(session_id)
        return dict(record) if record is not None else None

    def delete(self, session_id: str) -> bool:
        return self._records.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._records

    def __len__(self) -> int:
        return len(self._records)


class SessionRegistry:
    """
    Owns the SocraticEngine for each session id.

    Every call that mutates an engine goes through the session's lock, so
    two replies for the same session are processed one after the other.
    Different sessions never block each other.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        store: Optional[SessionStore] = None,
        engine_factory: Optional[Callable[..., SocraticEngine]] = None,
    ):
        """
        Initialize SessionRegistry.

        Args:
            backend: Completion backend shared by all engines
            store: Snapshot store (in-memory if omitted)
            engine_factory: Callable(session_id, backend, **kwargs) building an engine
        """
        self.backend = backend
        self.store = store if store is not None else InMemorySessionStore()
        self.engine_factory = engine_factory or SocraticEngine
        self._engines: Dict[str, SocraticEngine] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def create(self, session_id: str, **engine_kwargs) -> SocraticEngine:
        """Create and register a new engine; fails if the id is already live."""
        if session_id in self._engines:
            raise ValueError(f"Session {session_id} already exists")
        engine = self.engine_factory(session_id, self.backend, **engine_kwargs)
        self._engines[session_id] = engine
        logger.info(f"💾 [SessionRegistry] Created session {session_id}")
        return engine

    def get(self, session_id: str) -> Optional[SocraticEngine]:
        """
        Live engine for a session, restoring it from the store if needed.

        Returns:
            SocraticEngine or None if the session is unknown
        """
        engine = self._engines.get(session_id)
        if engine is not None:
            return engine

        record = self.store.load(session_id)
        if record is None:
            return None

        engine = self.engine_factory(session_id, self.backend)
        engine.restore(record)
        self._engines[session_id] = engine
        logger.info(f"💾 [SessionRegistry] Restored session {session_id} from store")
        return engine

    def evict(self, session_id: str) -> bool:
        """
        Drop the live engine; its last snapshot stays in the store.

        A session with a turn in flight is left alone and False is returned.
        """
        lock = self._locks.get(session_id)
        if lock is not None and lock.locked():
            logger.warning(f"⚠️ [SessionRegistry] Session {session_id} is busy; not evicted")
            return False
        removed = self._engines.pop(session_id, None) is not None
        self._locks.pop(session_id, None)
        if removed:
            logger.info(f"💾 [SessionRegistry] Evicted session {session_id}")
        return removed

    async def start(self, session_id: str, problem: str) -> str:
        engine = self._require(session_id)
        async with self._lock_for(session_id):
            reply = await engine.start_problem(problem)
            self.store.save(session_id, engine.snapshot())
        return reply

    async def respond(self, session_id: str, text: str) -> str:
        """
        Route a student reply to its session, one call at a time per session.

        Raises:
            KeyError: if the session is unknown
            InvalidStateError: if the engine is not awaiting a student reply
        """
        engine = self._require(session_id)
        async with self._lock_for(session_id):
            try:
                return await engine.respond_to_student(text)
            finally:
                self.store.save(session_id, engine.snapshot())

    def complete(self, session_id: str):
        engine = self._require(session_id)
        analytics = engine.complete_session()
        self.store.save(session_id, engine.snapshot())
        return analytics

    def _require(self, session_id: str) -> SocraticEngine:
        engine = self.get(session_id)
        if engine is None:
            raise KeyError(f"Unknown session: {session_id}")
        return engine

    def __len__(self) -> int:
        return len(self._engines)
