from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from agents.advisor import TravelAdvisor
from agents.survey_agent import SurveyAgent
from models.schemas import FeedbackRecord, FeedbackType


router = APIRouter(tags=["advisor"])


class AdvisorRequest(BaseModel):
    message: str
    conversation_context: Optional[str] = None


@router.post("/ai-chat")
async def ai_chat(payload: AdvisorRequest, request: Request):
    advisor: TravelAdvisor = request.app.state.advisor
    agent: SurveyAgent = request.app.state.survey_agent
    reply = await advisor.respond(payload.message, payload.conversation_context)
    if reply.success:
        agent.schedule_feedback(
            [
                FeedbackRecord(
                    type=FeedbackType.AI_CONVERSATION,
                    session_id=payload.conversation_context or uuid.uuid4().hex,
                    user_message=payload.message,
                    bot_response=reply.text,
                )
            ]
        )
    return {"response": reply.text, "success": reply.success}
