from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from agents.survey_agent import SessionBusyError, SessionNotFoundError, SurveyAgent
from memory.session_memory import SessionExistsError


@dataclass
class WebChatConnectionManager:
    connections: Dict[str, Set[WebSocket]] = field(default_factory=dict)

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.setdefault(session_id, set()).add(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        if session_id in self.connections:
            self.connections[session_id].discard(websocket)
            if not self.connections[session_id]:
                self.connections.pop(session_id, None)

    async def broadcast(self, session_id: str, payload: dict) -> None:
        for ws in list(self.connections.get(session_id, set())):
            await ws.send_json(payload)


async def websocket_chat_handler(
    websocket: WebSocket,
    agent: SurveyAgent,
    manager: WebChatConnectionManager,
    session_id: str,
) -> None:
    await manager.connect(session_id, websocket)
    try:
        try:
            session = await agent.get_session(session_id)
        except SessionNotFoundError:
            try:
                session = await agent.start_session(session_id)
            except SessionExistsError:
                session = await agent.get_session(session_id)
        await websocket.send_json({"type": "connected", "session": session.to_view()})
        while True:
            try:
                inbound = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"type": "error", "message": "invalid_json"})
                continue
            if not isinstance(inbound, dict):
                await websocket.send_json({"type": "error", "message": "object_expected"})
                continue
            content = str(inbound.get("content") or "")

            async def _typing() -> None:
                await manager.broadcast(session_id, {"type": "typing", "by": "bot"})

            try:
                messages = await agent.send_message(session_id, content, on_typing=_typing)
            except SessionBusyError:
                await websocket.send_json({"type": "error", "message": "reply_pending"})
                continue
            except SessionNotFoundError:
                await websocket.send_json({"type": "error", "message": "session_not_found"})
                break
            if not messages:
                continue
            session = await agent.get_session(session_id)
            await manager.broadcast(
                session_id,
                {
                    "type": "messages",
                    "messages": [m.model_dump(mode="json") for m in messages],
                    "session": session.to_view(),
                },
            )
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(session_id, websocket)
