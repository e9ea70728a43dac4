from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Sender(str, Enum):
    BOT = "bot"
    USER = "user"


class ConversationStage(str, Enum):
    INTRO = "intro"
    DETAILS = "details"
    RATING = "rating"
    SUGGESTIONS = "suggestions"
    COMPLETE = "complete"

    @property
    def position(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER = [
    ConversationStage.INTRO,
    ConversationStage.DETAILS,
    ConversationStage.RATING,
    ConversationStage.SUGGESTIONS,
    ConversationStage.COMPLETE,
]


class IssueCategory(str, Enum):
    DELAY = "delay"
    COST = "cost"
    COMFORT = "comfort"
    SAFETY = "safety"
    NAVIGATION = "navigation"
    OTHER = "other"


def _message_id() -> str:
    return uuid.uuid4().hex


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_message_id)
    sender: Sender
    text: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class TravelIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: IssueCategory
    severity: int = Field(ge=1, le=5)
    description: str = ""


class DialogueState(BaseModel):
    """Everything the stage machine needs to decide the next reply."""

    model_config = ConfigDict(frozen=True)

    stage: ConversationStage = ConversationStage.INTRO
    issues: List[TravelIssue] = Field(default_factory=list)
    rating: Optional[int] = Field(default=None, ge=1, le=5)


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: DialogueState
    replies: List[str] = Field(default_factory=list)
    feedback_due: bool = False


class ChatSession(BaseModel):
    session_id: str
    dialogue: DialogueState = Field(default_factory=DialogueState)
    transcript: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def stage(self) -> ConversationStage:
        return self.dialogue.stage

    @property
    def progress(self) -> int:
        return self.dialogue.stage.position

    @property
    def quick_replies(self) -> List[str]:
        if self.dialogue.stage == ConversationStage.RATING:
            return [str(n) for n in range(1, 6)]
        return []

    def to_view(self) -> dict:
        payload = self.model_dump(mode="json")
        payload["stage"] = self.stage.value
        payload["progress"] = self.progress
        payload["quick_replies"] = self.quick_replies
        return payload


class FeedbackType(str, Enum):
    SURVEY = "survey"
    AI_CONVERSATION = "ai_conversation"


class FeedbackRecord(BaseModel):
    type: FeedbackType = FeedbackType.SURVEY
    session_id: str
    user_message: str
    bot_response: str
    category: Optional[IssueCategory] = None
    severity: Optional[int] = Field(default=None, ge=1, le=5)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
