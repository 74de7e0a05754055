"""In-process registry of live sessions, scoped per owner."""

from __future__ import annotations

import threading
from typing import Optional

from tradebench.errors import SessionNotFoundError
from tradebench.session.models import SessionStatus, TradingSession


class SessionStore:
    """Shared by the manager, the monitor and request handlers.

    ``lock`` guards owner-level checks (start/resume); ``lock_for`` serializes
    transitions and ticks of a single session. Never take ``lock`` while
    holding a session lock.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._sessions: dict[str, TradingSession] = {}
        self._session_locks: dict[str, threading.Lock] = {}

    def add(self, session: TradingSession) -> None:
        with self.lock:
            self._sessions[session.id] = session
            self._session_locks[session.id] = threading.Lock()

    def get(self, session_id: str) -> TradingSession:
        with self.lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown session {session_id}")
        return session

    def lock_for(self, session_id: str) -> threading.Lock:
        with self.lock:
            lock = self._session_locks.get(session_id)
        if lock is None:
            raise SessionNotFoundError(f"Unknown session {session_id}")
        return lock

    def all(self) -> list[TradingSession]:
        with self.lock:
            return list(self._sessions.values())

    def with_status(self, *statuses: SessionStatus) -> list[TradingSession]:
        return [session for session in self.all() if session.status in statuses]

    def for_owner(self, owner_id: str) -> list[TradingSession]:
        return [session for session in self.all() if session.owner_id == owner_id]

    def active_for_owner(self, owner_id: str, exclude: Optional[str] = None) -> Optional[TradingSession]:
        for session in self.for_owner(owner_id):
            if session.status == SessionStatus.ACTIVE and session.id != exclude:
                return session
        return None

    def running_count(self, owner_id: str) -> int:
        return sum(1 for session in self.for_owner(owner_id) if not session.status.is_terminal)
