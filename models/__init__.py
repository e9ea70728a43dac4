from .schemas import (
    ChatSession,
    ConversationStage,
    DialogueState,
    FeedbackRecord,
    FeedbackType,
    IssueCategory,
    Message,
    Sender,
    Transition,
    TravelIssue,
)

__all__ = [
    "ChatSession",
    "ConversationStage",
    "DialogueState",
    "FeedbackRecord",
    "FeedbackType",
    "IssueCategory",
    "Message",
    "Sender",
    "Transition",
    "TravelIssue",
]
