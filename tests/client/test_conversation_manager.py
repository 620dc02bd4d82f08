"""
Tests for the conversation manager: selection, sends, deletes and
overlapping requests.
"""

import asyncio

import pytest

from tiacher.client.conversations import is_greeting
from tiacher.errors import DataAccessError
from tiacher.models import Message, MessageAuthor
from tiacher.services import conversation_service


@pytest.mark.asyncio
async def test_conversations_listed_on_sign_in(
    session_manager, conversation_manager, registered_user, async_session
):
    await conversation_service.create_conversation(async_session, registered_user.id, "Biology")

    await session_manager.sign_in("learner@example.com", "secret123")

    assert [c.title for c in conversation_manager.conversations] == ["Biology"]


@pytest.mark.asyncio
async def test_create_conversation_shows_unpersisted_greeting(
    signed_in, conversation_manager, async_session
):
    result = await conversation_manager.create_conversation()

    assert result.ok
    conversation = result.value
    assert conversation_manager.current.id == conversation.id
    assert [c.id for c in conversation_manager.conversations] == [conversation.id]

    assert len(conversation_manager.messages) == 1
    greeting = conversation_manager.messages[0]
    assert is_greeting(greeting)
    assert greeting.author == MessageAuthor.AI
    assert "**Explanatory texts**" in greeting.content

    persisted = await conversation_service.list_messages(
        async_session, conversation.id, signed_in.user.id
    )
    assert persisted == []


@pytest.mark.asyncio
async def test_select_conversation_loads_messages(signed_in, conversation_manager):
    created = await conversation_manager.create_conversation()
    await conversation_manager.send_message("What is DNA?", "user")
    await conversation_manager.send_message("DNA is...", "ai")

    # Switch away and back
    await conversation_manager.create_conversation()
    result = await conversation_manager.select_conversation(created.value)

    assert result.ok
    assert conversation_manager.current.id == created.value.id
    assert [m.content for m in conversation_manager.messages] == ["What is DNA?", "DNA is..."]
    assert not any(is_greeting(m) for m in conversation_manager.messages)
    assert not conversation_manager.loading


@pytest.mark.asyncio
async def test_send_without_current_creates_conversation(signed_in, conversation_manager):
    result = await conversation_manager.send_message("Explain fractions", "user")

    assert result.ok
    assert conversation_manager.current is not None
    assert conversation_manager.current.title == "Explain fractions"
    assert conversation_manager.messages[-1].content == "Explain fractions"
    assert conversation_manager.conversations[0].title == "Explain fractions"


@pytest.mark.asyncio
async def test_first_user_message_sets_title_once(signed_in, conversation_manager):
    await conversation_manager.create_conversation()

    await conversation_manager.send_message("x" * 60, "user")
    await conversation_manager.send_message("A second question", "user")

    assert conversation_manager.current.title == "x" * 50 + "..."
    assert conversation_manager.conversations[0].title == "x" * 50 + "..."


@pytest.mark.asyncio
async def test_ai_and_empty_messages_do_not_set_title(signed_in, conversation_manager):
    await conversation_manager.create_conversation()

    await conversation_manager.send_message("Welcome back!", "ai")
    await conversation_manager.send_message("", "user")

    assert conversation_manager.current.title is None

    await conversation_manager.send_message("Now a real question", "user")
    assert conversation_manager.current.title == "Now a real question"


@pytest.mark.asyncio
async def test_send_rejects_unknown_author(signed_in, conversation_manager):
    with pytest.raises(ValueError):
        await conversation_manager.send_message("Hi", "teacher")


@pytest.mark.asyncio
async def test_send_moves_conversation_to_top(signed_in, conversation_manager):
    older = await conversation_manager.create_conversation("Older")
    newer = await conversation_manager.create_conversation("Newer")
    assert [c.id for c in conversation_manager.conversations] == [
        newer.value.id,
        older.value.id,
    ]

    await conversation_manager.send_message("Bump", "user", conversation_id=older.value.id)

    assert [c.id for c in conversation_manager.conversations] == [
        older.value.id,
        newer.value.id,
    ]
    # Not the current conversation, so the view is unchanged
    assert conversation_manager.current.id == newer.value.id
    assert all(m.content != "Bump" for m in conversation_manager.messages)


@pytest.mark.asyncio
async def test_delete_current_conversation(signed_in, conversation_manager, notifier):
    created = await conversation_manager.create_conversation()
    await conversation_manager.send_message("Hi", "user")

    result = await conversation_manager.delete_conversation(created.value.id)

    assert result.ok
    assert conversation_manager.current is None
    assert conversation_manager.messages == []
    assert conversation_manager.conversations == []
    assert notifier.last.title == "Conversation deleted"


@pytest.mark.asyncio
async def test_delete_other_conversation_keeps_view(signed_in, conversation_manager):
    other = await conversation_manager.create_conversation("Other")
    current = await conversation_manager.create_conversation("Current")
    await conversation_manager.send_message("Still here", "user")
    messages_before = list(conversation_manager.messages)

    result = await conversation_manager.delete_conversation(other.value.id)

    assert result.ok
    assert conversation_manager.current.id == current.value.id
    assert conversation_manager.messages == messages_before
    assert [c.id for c in conversation_manager.conversations] == [current.value.id]


@pytest.mark.asyncio
async def test_failed_delete_leaves_state_intact(signed_in, conversation_manager, notifier):
    created = await conversation_manager.create_conversation("Keep me")
    conversations_before = list(conversation_manager.conversations)
    messages_before = list(conversation_manager.messages)

    result = await conversation_manager.delete_conversation("conv-missing")

    assert not result.ok
    assert isinstance(result.error, DataAccessError)
    assert conversation_manager.current.id == created.value.id
    assert conversation_manager.conversations == conversations_before
    assert conversation_manager.messages == messages_before
    assert notifier.last.title == "Could not delete conversation"


@pytest.mark.asyncio
async def test_failed_send_leaves_messages_intact(
    signed_in, conversation_manager, notifier, monkeypatch
):
    await conversation_manager.create_conversation()
    messages_before = list(conversation_manager.messages)

    async def failing_insert(session, user_id, data):
        raise DataAccessError("connection lost")

    monkeypatch.setattr(conversation_service, "insert_message", failing_insert)

    result = await conversation_manager.send_message("Hello?", "user")

    assert not result.ok
    assert conversation_manager.messages == messages_before
    assert notifier.last.title == "Could not send message"


@pytest.mark.asyncio
async def test_concurrent_ensure_creates_one_conversation(signed_in, conversation_manager):
    first, second = await asyncio.gather(
        conversation_manager.ensure_conversation(),
        conversation_manager.ensure_conversation(),
    )

    assert first.value.id == second.value.id
    assert len(conversation_manager.conversations) == 1


@pytest.mark.asyncio
async def test_send_during_explicit_create_lands_in_new_conversation(
    signed_in, conversation_manager
):
    """A send racing a "new chat" goes to the conversation left on screen."""
    created, sent = await asyncio.gather(
        conversation_manager.create_conversation("Explicit"),
        conversation_manager.send_message("Hi", "user"),
    )

    assert created.ok and sent.ok
    assert conversation_manager.current.id == created.value.id
    assert sent.value.conversation_id == created.value.id
    assert [m.content for m in conversation_manager.messages][1:] == ["Hi"]
    assert len(conversation_manager.conversations) == 1


@pytest.mark.asyncio
async def test_stale_selection_is_discarded(signed_in, conversation_manager, monkeypatch):
    """A slow load for an earlier selection must not overwrite a later one."""
    slow = await conversation_manager.create_conversation("Slow")
    fast = await conversation_manager.create_conversation("Fast")
    slow_started = asyncio.Event()
    release_slow = asyncio.Event()

    async def list_messages(session, conversation_id, user_id):
        if conversation_id == slow.value.id:
            slow_started.set()
            await release_slow.wait()
        return [
            Message(
                id=f"msg-{conversation_id}",
                conversation_id=conversation_id,
                user_id=user_id,
                content=f"from {conversation_id}",
                author=MessageAuthor.USER,
            )
        ]

    monkeypatch.setattr(conversation_service, "list_messages", list_messages)

    slow_task = asyncio.create_task(conversation_manager.select_conversation(slow.value))
    await slow_started.wait()
    assert conversation_manager.loading

    await conversation_manager.select_conversation(fast.value)
    release_slow.set()
    slow_result = await slow_task

    assert slow_result.ok
    assert conversation_manager.current.id == fast.value.id
    assert [m.content for m in conversation_manager.messages] == [f"from {fast.value.id}"]
    assert not conversation_manager.loading


@pytest.mark.asyncio
async def test_sign_out_resets_state(signed_in, conversation_manager):
    await conversation_manager.send_message("Hi", "user")

    await signed_in.sign_out()

    assert conversation_manager.conversations == []
    assert conversation_manager.current is None
    assert conversation_manager.messages == []


@pytest.mark.asyncio
async def test_operations_require_sign_in(conversation_manager, notifier):
    result = await conversation_manager.create_conversation()

    assert not result.ok
    assert result.error.message == "User not authenticated"
    assert notifier.last.title == "Could not create conversation"
