from __future__ import annotations

import re
from typing import Callable, Dict, Optional

from agents.issue_classifier import classify_issues
from agents.suggestions import top_suggestions
from models.schemas import ConversationStage, DialogueState, Transition


GREETING = (
    "Hello! I'm your TripAssist AI companion. I'm here to help understand and improve your travel "
    "experiences. Let's start by discussing any challenges you faced during your recent travels. "
    "What problems did you encounter?"
)
DETAILS_PROMPT = (
    "I understand you experienced some challenges. I've identified potential issues related to: {categories}. "
    "Can you provide more specific details about what happened?"
)
RATING_PROMPT = (
    "Thank you for those details. On a scale of 1-5, how would you rate your overall travel experience? "
    "(1 = Very Poor, 5 = Excellent)"
)
RATING_REPROMPT = "Please provide a rating between 1 and 5."
CLOSING_ACK = (
    "Thank you for your valuable feedback! Your input helps us improve travel experiences for everyone. "
    "Is there anything else you'd like to discuss about your travel experiences?"
)
FINAL_THANKS = (
    "Thank you for taking the time to share your travel experiences. Your feedback is valuable for "
    "improving travel services. Safe travels!"
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_rating(text: str) -> Optional[int]:
    """Read a leading integer ("4", " 4 stars") and accept it only within 1..5."""
    match = _LEADING_INT.match(text or "")
    if not match:
        return None
    value = int(match.group(1))
    if 1 <= value <= 5:
        return value
    return None


def _suggestions_reply(rating: int, state: DialogueState) -> str:
    parts = [f"Thank you for rating your experience as {rating}/5. "]
    if rating <= 2:
        parts.append("I'm sorry you had a difficult experience. ")
    elif rating >= 4:
        parts.append("I'm glad you had a good experience! ")
    parts.append("Based on the issues you mentioned, here are some suggestions for future travels:\n\n")
    tips = top_suggestions(state.issues)
    parts.append("\n".join(f"{i}. {tip}" for i, tip in enumerate(tips, start=1)))
    parts.append("\n\nWould you like to share any additional feedback or ask about specific travel tips?")
    return "".join(parts)


def _on_intro(state: DialogueState, text: str) -> Transition:
    issues = classify_issues(text)
    categories = ", ".join(issue.category.value for issue in issues)
    return Transition(
        state=state.model_copy(update={"stage": ConversationStage.DETAILS, "issues": issues}),
        replies=[DETAILS_PROMPT.format(categories=categories)],
    )


def _on_details(state: DialogueState, text: str) -> Transition:
    return Transition(
        state=state.model_copy(update={"stage": ConversationStage.RATING}),
        replies=[RATING_PROMPT],
    )


def _on_rating(state: DialogueState, text: str) -> Transition:
    rating = parse_rating(text)
    if rating is None:
        return Transition(state=state, replies=[RATING_REPROMPT])
    next_state = state.model_copy(update={"stage": ConversationStage.SUGGESTIONS, "rating": rating})
    return Transition(
        state=next_state,
        replies=[_suggestions_reply(rating, next_state)],
        feedback_due=True,
    )


def _on_suggestions(state: DialogueState, text: str) -> Transition:
    return Transition(
        state=state.model_copy(update={"stage": ConversationStage.COMPLETE}),
        replies=[CLOSING_ACK],
    )


def _on_complete(state: DialogueState, text: str) -> Transition:
    return Transition(state=state, replies=[FINAL_THANKS])


_HANDLERS: Dict[ConversationStage, Callable[[DialogueState, str], Transition]] = {
    ConversationStage.INTRO: _on_intro,
    ConversationStage.DETAILS: _on_details,
    ConversationStage.RATING: _on_rating,
    ConversationStage.SUGGESTIONS: _on_suggestions,
    ConversationStage.COMPLETE: _on_complete,
}


def transition(state: DialogueState, text: str) -> Transition:
    """Advance the survey by one user turn.

    Pure: the input state is never mutated and no I/O happens here. Callers
    are expected to have rejected empty input already.
    """
    return _HANDLERS[state.stage](state, text)
