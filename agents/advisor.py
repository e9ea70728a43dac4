from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx

from settings import SETTINGS

logger = logging.getLogger(__name__)


FALLBACK_REPLY = "I apologize, but I'm having trouble connecting right now. Please try again in a moment."

SYSTEM_PROMPT = """You are TripAssist AI, a helpful travel advisor that collects feedback and provides personalized travel advice.

Your role is to:
1. Ask users about their travel experiences and problems they faced
2. Collect detailed feedback about their trips
3. Provide personalized suggestions for better travel experiences
4. Rate and categorize travel issues
5. Give practical, actionable advice for future trips

Be conversational, empathetic, and helpful. Ask follow-up questions to understand their travel challenges better. When they share problems, provide specific solutions and tips.

Current conversation context: {context}"""


class AdvisorUnavailableError(RuntimeError):
    pass


@dataclass
class AdvisorReply:
    text: str
    success: bool
    model: str


class TravelAdvisor:
    """Free-form travel advice from a hosted chat-completions model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else SETTINGS.openai_api_key
        self.model = model or SETTINGS.advisor_model
        self.base_url = (base_url or SETTINGS.openai_base_url).rstrip("/")
        self._transport = transport

    def available(self) -> bool:
        return bool(self.api_key)

    async def respond(self, message: str, session_context: str | None = None) -> AdvisorReply:
        try:
            text = await self._complete(message, session_context)
            return AdvisorReply(text=text, success=True, model=self.model)
        except Exception as exc:
            logger.warning("advisor_call_failed", extra={"model": self.model, "error": repr(exc)})
            return AdvisorReply(text=FALLBACK_REPLY, success=False, model=self.model)

    async def reply(self, message: str, session_context: str | None = None) -> str:
        return (await self.respond(message, session_context)).text

    async def _complete(self, message: str, session_context: str | None) -> str:
        if not self.available():
            raise AdvisorUnavailableError("openai_api_key_not_configured")
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT.format(context=session_context or "New conversation")},
                {"role": "user", "content": message},
            ],
            "max_tokens": SETTINGS.advisor_max_tokens,
            "temperature": 0.7,
        }
        async with httpx.AsyncClient(timeout=SETTINGS.llm_timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()
        text = str(((data.get("choices") or [{}])[0].get("message") or {}).get("content") or "").strip()
        if not text:
            raise AdvisorUnavailableError("empty_completion")
        return text
