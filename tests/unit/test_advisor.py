from __future__ import annotations

import asyncio
import json

import httpx

from agents.advisor import FALLBACK_REPLY, TravelAdvisor


def test_advisor_returns_model_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Pack light."}}]})

    async def _run():
        advisor = TravelAdvisor(api_key="sk-test", transport=httpx.MockTransport(handler))
        reply = await advisor.respond("Any tips for Lisbon?", "sess-9")
        assert reply.success
        assert reply.text == "Pack light."

    asyncio.run(_run())
    body = seen["body"]
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.7
    assert body["messages"][1] == {"role": "user", "content": "Any tips for Lisbon?"}
    assert "sess-9" in body["messages"][0]["content"]


def test_advisor_falls_back_on_api_error():
    async def _run():
        advisor = TravelAdvisor(
            api_key="sk-test",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )
        assert await advisor.reply("hello") == FALLBACK_REPLY

    asyncio.run(_run())


def test_advisor_falls_back_on_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    async def _run():
        advisor = TravelAdvisor(api_key="sk-test", transport=httpx.MockTransport(handler))
        reply = await advisor.respond("hello")
        assert not reply.success
        assert reply.text == FALLBACK_REPLY

    asyncio.run(_run())


def test_advisor_without_key_uses_fallback():
    async def _run():
        advisor = TravelAdvisor(api_key="")
        assert not advisor.available()
        assert await advisor.reply("hello") == FALLBACK_REPLY

    asyncio.run(_run())
