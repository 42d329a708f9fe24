import asyncio
import json

import httpx
import pytest

from castbot.llm_client import CompletionError, GeminiCompletionService


def _service(handler, api_key="k-123"):
    return GeminiCompletionService(
        api_key=api_key,
        model="gemini-2.0-flash",
        base_url="https://gemini.test/v1beta/",
        transport=httpx.MockTransport(handler),
    )


def test_complete_posts_prompt_and_joins_parts():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "TALK:"}, {"text": "やあ\n"}]}}]},
        )

    out = asyncio.run(_service(handler).complete("hello"))

    assert out == "TALK:やあ"
    assert seen["url"] == "https://gemini.test/v1beta/models/gemini-2.0-flash:generateContent"
    assert seen["key"] == "k-123"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "hello"


def test_complete_raises_on_upstream_error():
    def handler(request):
        return httpx.Response(503, text="overloaded")

    with pytest.raises(CompletionError, match="503"):
        asyncio.run(_service(handler).complete("hello"))


def test_complete_raises_on_unexpected_shape():
    def handler(request):
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(CompletionError, match="unexpected response format"):
        asyncio.run(_service(handler).complete("hello"))


def test_complete_wraps_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CompletionError, match="connection refused"):
        asyncio.run(_service(handler).complete("hello"))


def test_disabled_without_api_key():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    service = _service(handler, api_key="  ")
    assert service.enabled is False
    with pytest.raises(CompletionError):
        asyncio.run(service.complete("hello"))
    assert calls == []
