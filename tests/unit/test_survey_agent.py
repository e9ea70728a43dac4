from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import List

import pytest

from agents.dialogue import GREETING, RATING_REPROMPT
from agents.survey_agent import SessionBusyError, SessionNotFoundError, SurveyAgent
from memory.session_memory import SessionExistsError, SessionMemoryStore
from models.schemas import ConversationStage, FeedbackRecord, IssueCategory, Sender
from storage.feedback_store import FeedbackStore


class RecordingStore(FeedbackStore):
    def __init__(self) -> None:
        self.records: List[FeedbackRecord] = []

    async def append(self, record: FeedbackRecord) -> None:
        self.records.append(record)


class BrokenStore(FeedbackStore):
    async def append(self, record: FeedbackRecord) -> None:
        raise ConnectionError("backend down")


def _agent(store: FeedbackStore | None = None, delay: float = 0.0) -> SurveyAgent:
    return SurveyAgent(feedback_store=store or RecordingStore(), typing_delay_seconds=delay)


def test_new_session_opens_with_greeting():
    async def _run():
        agent = _agent()
        session = await agent.start_session("s-greet")
        assert session.stage == ConversationStage.INTRO
        assert [(m.sender, m.text) for m in session.transcript] == [(Sender.BOT, GREETING)]

    asyncio.run(_run())


def test_blank_input_is_ignored():
    async def _run():
        agent = _agent()
        await agent.start_session("s-blank")
        for text in ["", "   ", "\n\t"]:
            assert await agent.send_message("s-blank", text) == []
        session = await agent.get_session("s-blank")
        assert len(session.transcript) == 1
        assert session.stage == ConversationStage.INTRO

    asyncio.run(_run())


def test_turn_appends_trimmed_user_message_then_reply():
    async def _run():
        agent = _agent()
        await agent.start_session("s-turn")
        new = await agent.send_message("s-turn", "  seat was cramped  ")
        assert [m.sender for m in new] == [Sender.USER, Sender.BOT]
        assert new[0].text == "seat was cramped"
        session = await agent.get_session("s-turn")
        assert session.transcript[-2:] == new
        assert session.stage == ConversationStage.DETAILS
        assert [i.category for i in session.dialogue.issues] == [IssueCategory.COMFORT]

    asyncio.run(_run())


def test_full_walk_persists_issue_summary():
    async def _run():
        store = RecordingStore()
        agent = _agent(store)
        await agent.start_session("s-walk")
        stages = []
        for text in ["delayed and expensive", "waited 3 hours", "seven", "2", "nothing else", "bye"]:
            await agent.send_message("s-walk", text)
            stages.append((await agent.get_session("s-walk")).stage)
        await agent.drain()
        assert stages == [
            ConversationStage.DETAILS,
            ConversationStage.RATING,
            ConversationStage.RATING,
            ConversationStage.SUGGESTIONS,
            ConversationStage.COMPLETE,
            ConversationStage.COMPLETE,
        ]
        session = await agent.get_session("s-walk")
        assert session.dialogue.rating == 2
        assert session.transcript[6].text == RATING_REPROMPT
        assert [(r.category, r.severity, r.rating) for r in store.records] == [
            (IssueCategory.DELAY, 3, 2),
            (IssueCategory.COST, 3, 2),
        ]
        assert all(r.session_id == "s-walk" for r in store.records)

    asyncio.run(_run())


def test_persistence_failure_does_not_break_dialogue():
    async def _run():
        agent = _agent(BrokenStore())
        await agent.start_session("s-broken")
        for text in ["lost", "details", "4"]:
            await agent.send_message("s-broken", text)
        await agent.drain()
        session = await agent.get_session("s-broken")
        assert session.stage == ConversationStage.SUGGESTIONS
        assert "glad" in session.transcript[-1].text

    asyncio.run(_run())


def test_second_message_while_reply_pending_is_rejected():
    async def _run():
        agent = _agent(delay=0.2)
        await agent.start_session("s-busy")
        first = asyncio.create_task(agent.send_message("s-busy", "late train"))
        await asyncio.sleep(0.01)
        assert agent.is_busy("s-busy")
        with pytest.raises(SessionBusyError):
            await agent.send_message("s-busy", "hello again")
        await first
        session = await agent.get_session("s-busy")
        assert len(session.transcript) == 3
        assert not agent.is_busy("s-busy")

    asyncio.run(_run())


def test_unknown_and_abandoned_sessions():
    async def _run():
        agent = _agent()
        with pytest.raises(SessionNotFoundError):
            await agent.send_message("missing", "hi")
        await agent.start_session("s-gone")
        await agent.end_session("s-gone")
        with pytest.raises(SessionNotFoundError):
            await agent.get_session("s-gone")

    asyncio.run(_run())


def test_sessions_do_not_share_state():
    async def _run():
        agent = _agent()
        await agent.start_session("a")
        await agent.start_session("b")
        await agent.send_message("a", "unsafe area")
        b = await agent.get_session("b")
        assert b.stage == ConversationStage.INTRO
        assert b.dialogue.issues == []

    asyncio.run(_run())


def test_starting_a_live_session_again_is_rejected():
    async def _run():
        agent = _agent()
        await agent.start_session("dup")
        for text in ["late", "x", "3"]:
            await agent.send_message("dup", text)
        with pytest.raises(SessionExistsError):
            await agent.start_session("dup")
        session = await agent.get_session("dup")
        assert session.stage == ConversationStage.SUGGESTIONS
        assert len(session.transcript) == 7
        await agent.drain()

    asyncio.run(_run())


def test_expired_session_id_can_be_reused():
    async def _run():
        store = SessionMemoryStore(ttl_seconds=60)
        agent = SurveyAgent(session_memory=store, feedback_store=RecordingStore(), typing_delay_seconds=0)
        await agent.start_session("old")
        await agent.send_message("old", "cramped seat")
        store._touch["old"] = datetime.utcnow() - timedelta(seconds=120)
        fresh = await agent.start_session("old")
        assert fresh.stage == ConversationStage.INTRO
        assert len(fresh.transcript) == 1

    asyncio.run(_run())


def test_expired_sessions_release_their_locks():
    async def _run():
        store = SessionMemoryStore(ttl_seconds=60)
        agent = SurveyAgent(session_memory=store, feedback_store=RecordingStore(), typing_delay_seconds=0)
        for n in range(50):
            await agent.start_session(f"ttl-{n}")
            await agent.send_message(f"ttl-{n}", "late bus")
        assert len(agent._locks) == 50
        stale = datetime.utcnow() - timedelta(seconds=120)
        for n in range(50):
            store._touch[f"ttl-{n}"] = stale
        await agent.start_session("ttl-new")
        assert len(store) == 1
        assert agent._locks == {}

    asyncio.run(_run())


def test_reply_is_not_written_over_a_replacement_session():
    async def _run():
        agent = _agent(delay=0.2)
        await agent.start_session("swap")
        pending = asyncio.create_task(agent.send_message("swap", "late train"))
        await asyncio.sleep(0.01)
        await agent.end_session("swap")
        await agent.start_session("swap")
        with pytest.raises(SessionNotFoundError):
            await pending
        session = await agent.get_session("swap")
        assert session.stage == ConversationStage.INTRO
        assert [m.sender for m in session.transcript] == [Sender.BOT]

    asyncio.run(_run())
