from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request, WebSocket
from pydantic import BaseModel

from agents.survey_agent import SessionBusyError, SessionNotFoundError, SurveyAgent
from channels.web_chat import WebChatConnectionManager, websocket_chat_handler
from memory.session_memory import SessionExistsError


router = APIRouter(prefix="/chat", tags=["chat"])


class StartSessionRequest(BaseModel):
    session_id: Optional[str] = None


class ChatMessageRequest(BaseModel):
    content: str = ""


def _agent(request: Request) -> SurveyAgent:
    return request.app.state.survey_agent


@router.post("/sessions", status_code=201)
async def start_session(request: Request, payload: Optional[StartSessionRequest] = None):
    try:
        session = await _agent(request).start_session(payload.session_id if payload else None)
    except SessionExistsError:
        raise HTTPException(status_code=409, detail="session_exists")
    return session.to_view()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    try:
        session = await _agent(request).get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session_not_found")
    return session.to_view()


@router.post("/sessions/{session_id}/messages")
async def post_message(session_id: str, payload: ChatMessageRequest, request: Request):
    agent = _agent(request)
    try:
        messages = await agent.send_message(session_id, payload.content)
        session = await agent.get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session_not_found")
    except SessionBusyError:
        raise HTTPException(status_code=409, detail="reply_pending")
    return {
        "accepted": bool(messages),
        "messages": [m.model_dump(mode="json") for m in messages],
        "session": session.to_view(),
    }


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(session_id: str, request: Request):
    try:
        await _agent(request).end_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session_not_found")


@router.websocket("/ws/{session_id}")
async def chat_ws(websocket: WebSocket, session_id: str):
    app = websocket.app
    manager: WebChatConnectionManager = app.state.web_chat_manager
    await websocket_chat_handler(websocket, agent=app.state.survey_agent, manager=manager, session_id=session_id)
