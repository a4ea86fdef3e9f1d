"""
MCP Session Store

Process-wide record of MCP sessions. One store is created per application
and injected into the transport; nothing is persisted across restarts.
"""
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

logger = logging.getLogger("mcp_http_servers.sessions")


@dataclass
class Session:
    session_id: str
    initialized: bool = False
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)


class SessionStore:
    """
    Session id -> Session mapping.

    Every id the store mints is remembered, so an id is never handed out
    twice during the life of the process, even after it was pruned.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._minted: Set[str] = set()
        self._lock = threading.Lock()

    def _mint_id(self) -> str:
        while True:
            session_id = uuid.uuid4().hex
            if session_id not in self._minted and session_id not in self._sessions:
                self._minted.add(session_id)
                return session_id

    def create(self, session_id: Optional[str] = None) -> Session:
        """Create a session, minting a fresh id unless one is given. Existing sessions are returned as is."""
        with self._lock:
            if session_id is not None and session_id in self._sessions:
                return self._sessions[session_id]
            if session_id is None:
                session_id = self._mint_id()
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
        logger.info(f"Session created: {session_id}")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def touch(self, session_id: str) -> Optional[Session]:
        """Record activity on a session. Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_activity = time.time()
            return session

    def mark_initialized(self, session_id: str) -> Session:
        session = self.create(session_id)
        with self._lock:
            session.initialized = True
            session.last_activity = time.time()
        return session

    def prune_idle(self, max_idle_seconds: float) -> int:
        """Drop sessions idle for longer than ``max_idle_seconds``. Returns how many were removed."""
        cutoff = time.time() - max_idle_seconds
        with self._lock:
            stale = [sid for sid, session in self._sessions.items() if session.last_activity < cutoff]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info(f"Pruned {len(stale)} idle sessions")
        return len(stale)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
