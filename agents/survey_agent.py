from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from agents.dialogue import GREETING, transition
from memory.session_memory import SessionMemoryStore
from models.schemas import ChatSession, FeedbackRecord, Message, Sender
from settings import SETTINGS
from storage.feedback_store import FeedbackStore, build_feedback_store

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    pass


class SessionBusyError(RuntimeError):
    pass


class SurveyAgent:
    """Runs the travel survey for every open session, one message at a time."""

    def __init__(
        self,
        session_memory: SessionMemoryStore | None = None,
        feedback_store: FeedbackStore | None = None,
        typing_delay_seconds: float | None = None,
    ) -> None:
        self.session_memory = session_memory if session_memory is not None else SessionMemoryStore()
        self.feedback_store = feedback_store if feedback_store is not None else build_feedback_store()
        if typing_delay_seconds is None:
            typing_delay_seconds = SETTINGS.typing_delay_ms / 1000.0
        self.typing_delay_seconds = max(0.0, typing_delay_seconds)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Set[asyncio.Task] = set()
        self.session_memory.add_expiry_listener(self._forget_lock)

    async def start_session(self, session_id: str | None = None) -> ChatSession:
        session = await self.session_memory.create(session_id)
        session.transcript.append(Message(sender=Sender.BOT, text=GREETING))
        logger.info("survey_session_started", extra={"session_id": session.session_id})
        return await self.session_memory.save(session)

    async def get_session(self, session_id: str) -> ChatSession:
        session = await self.session_memory.get(session_id)
        if session is None:
            self._forget_lock(session_id)
            raise SessionNotFoundError(session_id)
        return session

    async def end_session(self, session_id: str) -> None:
        if not await self.session_memory.delete(session_id):
            raise SessionNotFoundError(session_id)
        self._locks.pop(session_id, None)
        logger.info("survey_session_abandoned", extra={"session_id": session_id})

    def _forget_lock(self, session_id: str) -> None:
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            self._locks.pop(session_id, None)

    def is_busy(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return bool(lock and lock.locked())

    async def send_message(
        self,
        session_id: str,
        text: str,
        on_typing: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> List[Message]:
        """Submit one user turn and return the messages it appended.

        Blank input appends nothing. A turn arriving while the previous reply
        is still pending raises SessionBusyError.
        """
        session = await self.get_session(session_id)
        content = (text or "").strip()
        if not content:
            return []
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        if lock.locked():
            raise SessionBusyError(session_id)
        try:
            async with lock:
                user_message = Message(sender=Sender.USER, text=content)
                session.transcript.append(user_message)
                await self.session_memory.save(session)

                if on_typing is not None:
                    await on_typing()
                if self.typing_delay_seconds:
                    await asyncio.sleep(self.typing_delay_seconds)
                if await self.session_memory.get(session_id) is not session:
                    raise SessionNotFoundError(session_id)

                previous_stage = session.dialogue.stage
                result = transition(session.dialogue, content)
                replies = [Message(sender=Sender.BOT, text=reply) for reply in result.replies]
                session.dialogue = result.state
                session.transcript.extend(replies)
                await self.session_memory.save(session)
                logger.info(
                    "survey_turn",
                    extra={
                        "session_id": session_id,
                        "from_stage": previous_stage.value,
                        "to_stage": result.state.stage.value,
                    },
                )
                if result.feedback_due:
                    self.schedule_feedback(self._summary_records(session, content, replies))
        finally:
            if await self.session_memory.get(session_id) is None:
                self._forget_lock(session_id)
        return [user_message, *replies]

    def _summary_records(self, session: ChatSession, user_text: str, replies: List[Message]) -> List[FeedbackRecord]:
        bot_text = "\n\n".join(m.text for m in replies)
        return [
            FeedbackRecord(
                session_id=session.session_id,
                user_message=user_text,
                bot_response=bot_text,
                category=issue.category,
                severity=issue.severity,
                rating=session.dialogue.rating,
            )
            for issue in session.dialogue.issues
        ]

    def schedule_feedback(self, records: Iterable[FeedbackRecord]) -> asyncio.Task:
        task = asyncio.create_task(self._persist(list(records)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _persist(self, records: List[FeedbackRecord]) -> None:
        for record in records:
            try:
                await self.feedback_store.append(record)
            except Exception:
                logger.exception(
                    "feedback_persist_failed",
                    extra={"session_id": record.session_id, "type": record.type.value},
                )

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
