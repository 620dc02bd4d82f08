"""
Tests for the completion gateway client.
"""

import json
from unittest.mock import patch

import httpx
import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from api.app import app
from tiacher.client import CompletionClient
from tiacher.errors import CompletionError


def _client(handler) -> CompletionClient:
    return CompletionClient(base_url="http://completion.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_complete_sends_message_and_style():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Gravity pulls masses together."})

    answer = await _client(handler).complete("What is gravity?", "Quizzes")

    assert answer == "Gravity pulls masses together."
    assert seen["path"] == "/chat-with-ai"
    assert seen["body"] == {"message": "What is gravity?", "learningStyle": "Quizzes"}


@pytest.mark.asyncio
async def test_complete_non_200():
    def handler(request):
        return httpx.Response(500, json={"error": "upstream exploded"})

    with pytest.raises(CompletionError, match="500: upstream exploded"):
        await _client(handler).complete("Hi", "Videos")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"answer": "wrong key"}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_complete_malformed_body(response):
    with pytest.raises(CompletionError):
        await _client(lambda request: response).complete("Hi", "Videos")


@pytest.mark.asyncio
async def test_complete_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(CompletionError, match="unreachable"):
        await _client(handler).complete("Hi", "Videos")


@pytest.mark.asyncio
async def test_complete_or_fallback_uses_placeholder():
    def handler(request):
        return httpx.Response(500, json={"error": "down"})

    answer, used_fallback = await _client(handler).complete_or_fallback("What is pi?", "Exercises")

    assert used_fallback
    assert "Exercises style" in answer
    assert 'For "What is pi?"' in answer


@pytest.mark.asyncio
async def test_complete_against_gateway_app():
    """End to end through the ASGI app with a fake upstream model."""
    fake_model = FakeListChatModel(responses=["Photosynthesis turns light into sugar."])
    client = CompletionClient(
        base_url="http://testserver", transport=httpx.ASGITransport(app=app)
    )

    with patch("api.routes.build_chat_model", return_value=fake_model):
        answer = await client.complete("What is photosynthesis?", "Explanatory texts")

    assert answer == "Photosynthesis turns light into sugar."


@pytest.mark.asyncio
async def test_gateway_without_credential_falls_back():
    client = CompletionClient(
        base_url="http://testserver", transport=httpx.ASGITransport(app=app)
    )

    answer, used_fallback = await client.complete_or_fallback("Hi", "Quizzes")

    assert used_fallback
    assert "Quizzes style" in answer
