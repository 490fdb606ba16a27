"""
Process-wide session store.
Sessions are keyed by their opaque id; all end-of-answer work for one id
is serialized through that id's asyncio lock.
"""
import time
import asyncio
import logging
from threading import Lock
from typing import Dict, Iterator, Optional

from interview.state import InterviewSession
from models.schemas import SessionStatus
from utils.errors import SessionMissing

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self):
        self._lock = Lock()
        self._sessions: Dict[str, InterviewSession] = {}
        self._turn_locks: Dict[str, asyncio.Lock] = {}

    def create(self, **kwargs) -> InterviewSession:
        session = InterviewSession(**kwargs)
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session {session.session_id} already exists")
            self._sessions[session.session_id] = session
            self._turn_locks[session.session_id] = asyncio.Lock()
        logger.info(f"Created session {session.session_id} ({session.role or 'no role'}, {session.max_turns} turns)")
        return session

    def get(self, session_id: str) -> Optional[InterviewSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def require(self, session_id: str) -> InterviewSession:
        session = self.get(session_id)
        if session is None:
            raise SessionMissing(session_id)
        return session

    def update(self, session_id: str, **fields) -> InterviewSession:
        """Set attributes on a stored session; unknown attribute names are rejected."""
        session = self.require(session_id)
        for name, value in fields.items():
            if name == "phase" or not hasattr(session, name):
                raise AttributeError(f"Cannot set session field {name!r}")
            setattr(session, name, value)
        session.touch()
        return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            self._turn_locks.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def lock(self, session_id: str) -> asyncio.Lock:
        with self._lock:
            if session_id not in self._sessions:
                raise SessionMissing(session_id)
            return self._turn_locks.setdefault(session_id, asyncio.Lock())

    def cleanup_inactive(self, completed_ttl_sec: float, idle_ttl_sec: Optional[float] = None) -> int:
        """
        Evict sessions nobody is using any more.

        Completed sessions go once idle for ``completed_ttl_sec``; any
        other session goes once idle for ``idle_ttl_sec`` (defaults to
        the completed TTL), unless an end-of-answer sequence is running.
        """
        now = time.time()
        completed_cutoff = now - max(0.0, float(completed_ttl_sec))
        idle_cutoff = now - max(0.0, float(completed_ttl_sec if idle_ttl_sec is None else idle_ttl_sec))
        removed = 0
        with self._lock:
            for session_id, session in list(self._sessions.items()):
                if session.status == SessionStatus.COMPLETED:
                    expired = session.updated_at <= completed_cutoff
                else:
                    expired = not session.answer_pending and session.updated_at <= idle_cutoff
                if expired:
                    self._sessions.pop(session_id, None)
                    self._turn_locks.pop(session_id, None)
                    removed += 1
        if removed:
            logger.info(f"Evicted {removed} inactive session(s)")
        return removed

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._sessions))
