from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Dict, List, Optional

from models.schemas import ChatSession
from settings import SETTINGS


class SessionExistsError(ValueError):
    pass


class SessionMemoryStore:
    """In-process survey sessions keyed by an opaque token.

    Nothing is shared between sessions and nothing outlives the process.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else SETTINGS.session_ttl_seconds
        self._sessions: Dict[str, ChatSession] = {}
        self._touch: Dict[str, datetime] = {}
        self._expiry_listeners: List[Callable[[str], None]] = []
        self._lock = Lock()

    def add_expiry_listener(self, listener: Callable[[str], None]) -> None:
        self._expiry_listeners.append(listener)

    def _expire_if_needed(self, session_id: str) -> None:
        last_touch = self._touch.get(session_id)
        if last_touch and datetime.utcnow() - last_touch > timedelta(seconds=self.ttl_seconds):
            self._sessions.pop(session_id, None)
            self._touch.pop(session_id, None)
            for listener in self._expiry_listeners:
                listener(session_id)

    def _sweep(self) -> None:
        for session_id in list(self._sessions):
            self._expire_if_needed(session_id)

    async def create(self, session_id: str | None = None) -> ChatSession:
        sid = session_id or uuid.uuid4().hex
        with self._lock:
            self._sweep()
            # A live token keeps its conversation; it is never restarted in place.
            if sid in self._sessions:
                raise SessionExistsError(sid)
            ctx = ChatSession(session_id=sid)
            self._sessions[sid] = ctx
            self._touch[sid] = datetime.utcnow()
            return ctx

    async def get(self, session_id: str) -> Optional[ChatSession]:
        with self._lock:
            self._expire_if_needed(session_id)
            return self._sessions.get(session_id)

    async def save(self, session: ChatSession) -> ChatSession:
        with self._lock:
            session.updated_at = datetime.utcnow()
            self._sessions[session.session_id] = session
            self._touch[session.session_id] = session.updated_at
            return session

    async def delete(self, session_id: str) -> bool:
        with self._lock:
            self._touch.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
