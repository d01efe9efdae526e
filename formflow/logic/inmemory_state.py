"""Central in-memory holder of live form sessions.

Routes look sessions up here by id. Each session carries its own lock;
`locked()` holds it for the duration of a request's engine work because
FastAPI runs sync handlers on a thread pool.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional
import logging
import threading
import uuid

from formflow.config import EngineSettings, load_config
from formflow.errors import SessionNotFoundError
from formflow.logic.session import FormSession, build_session

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, FormSession] = {}
        self._lock = threading.Lock()

    def create(
        self,
        payload: Mapping[str, Any],
        *,
        variables: Optional[Mapping[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
    ) -> FormSession:
        session_id = str(uuid.uuid4())
        session = build_session(
            session_id,
            payload,
            variables=variables,
            settings=settings or load_config().engine,
        )
        with self._lock:
            self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> FormSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @contextmanager
    def locked(self, session_id: str) -> Iterator[FormSession]:
        session = self.get(session_id)
        with session.lock:
            yield session

    def discard(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        with session.lock:
            session.close()
        logger.info("session.discarded session_id=%s", session_id)

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)


# Live sessions: session_id -> FormSession
SESSIONS = SessionRegistry()

__all__ = ["SessionRegistry", "SESSIONS"]
