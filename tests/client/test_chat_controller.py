"""
Tests for a full chat turn: messages, completion and XP.
"""

import json

import httpx
import pytest

from tiacher.client import ChatController, CompletionClient
from tiacher.errors import DataAccessError
from tiacher.models import MessageAuthor
from tiacher.services import conversation_service


def _completion(handler) -> CompletionClient:
    return CompletionClient(base_url="http://completion.test", transport=httpx.MockTransport(handler))


def _answering(text: str, seen: list | None = None) -> CompletionClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json={"response": text})

    return _completion(handler)


@pytest.fixture
def chat(signed_in, conversation_manager) -> ChatController:
    return ChatController(signed_in, conversation_manager, _answering("Atoms are tiny."))


@pytest.mark.asyncio
async def test_send_runs_full_turn(chat, signed_in, conversation_manager, async_session):
    result = await chat.send("What is an atom?")

    assert result.ok
    turn = result.value
    assert not turn.used_fallback
    assert turn.user_message.content == "What is an atom?"
    assert turn.user_message.author == MessageAuthor.USER
    assert turn.ai_message.content == "Atoms are tiny."
    assert turn.ai_message.author == MessageAuthor.AI
    assert turn.progress_event.progress.xp == 10

    assert signed_in.progress.xp == 10
    assert conversation_manager.current.title == "What is an atom?"
    assert [m.content for m in conversation_manager.messages][-2:] == [
        "What is an atom?",
        "Atoms are tiny.",
    ]

    persisted = await conversation_service.list_messages(
        async_session, turn.conversation.id, signed_in.user.id
    )
    assert [m.author for m in persisted] == [MessageAuthor.USER, MessageAuthor.AI]
    assert not chat.is_loading


@pytest.mark.asyncio
async def test_blank_input_is_ignored(chat, conversation_manager):
    assert await chat.send("   ") is None
    assert conversation_manager.current is None


@pytest.mark.asyncio
async def test_completion_failure_uses_placeholder(signed_in, conversation_manager):
    def handler(request):
        return httpx.Response(500, json={"error": "no key"})

    chat = ChatController(signed_in, conversation_manager, _completion(handler))

    result = await chat.send("What is an atom?")

    assert result.ok
    assert result.value.used_fallback
    assert 'For "What is an atom?"' in result.value.ai_message.content
    # XP is still awarded for the turn
    assert signed_in.progress.xp == 10


@pytest.mark.asyncio
async def test_style_change_applies_to_next_turn(signed_in, conversation_manager):
    seen = []
    chat = ChatController(signed_in, conversation_manager, _answering("Answer", seen))

    await chat.send("First")
    await signed_in.set_learning_style("Quizzes")
    await chat.send("Second")

    styles = [json.loads(r.content)["learningStyle"] for r in seen]
    assert styles == ["Explanatory texts", "Quizzes"]


@pytest.mark.asyncio
async def test_level_up_after_ten_turns(signed_in, conversation_manager):
    chat = ChatController(signed_in, conversation_manager, _answering("Sure."))

    for i in range(10):
        result = await chat.send(f"Question {i}")

    assert result.value.progress_event.leveled_up
    assert signed_in.progress.xp == 100
    assert signed_in.progress.level == 2


@pytest.mark.asyncio
async def test_unsaved_question_stops_the_turn(
    chat, signed_in, conversation_manager, monkeypatch
):
    async def failing_insert(session, user_id, data):
        raise DataAccessError("connection lost")

    monkeypatch.setattr(conversation_service, "insert_message", failing_insert)

    result = await chat.send("What is an atom?")

    assert not result.ok
    assert signed_in.progress.xp == 0
    assert not chat.is_loading


@pytest.mark.asyncio
async def test_custom_xp_per_turn(signed_in, conversation_manager):
    chat = ChatController(signed_in, conversation_manager, _answering("Ok"), xp_per_turn=25)

    result = await chat.send("Hello")

    assert result.value.progress_event.points == 25
    assert signed_in.progress.xp == 25
