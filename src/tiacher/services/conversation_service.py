"""
Conversation and message persistence.

All reads and writes are scoped by the owning user's ID.
"""

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tiacher.errors import DataAccessError
from tiacher.models import (
    Conversation,
    ConversationModel,
    Message,
    MessageCreate,
    MessageModel,
)
from tiacher.models.base import utcnow
from tiacher.utils.ids import PREFIX_CONVERSATION, PREFIX_MESSAGE, generate_entity_id

TITLE_MAX_LENGTH = 50


def derive_title(content: str) -> str:
    """
    Conversation title taken from its first user message.

    Examples:
        >>> derive_title("What is photosynthesis?")
        'What is photosynthesis?'
        >>> derive_title("x" * 60) == "x" * 50 + "..."
        True
    """
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_MAX_LENGTH] + "..."
    return content


async def list_conversations(session: AsyncSession, user_id: str) -> list[Conversation]:
    """List a user's conversations, most recently active first."""
    result = await session.execute(
        select(ConversationModel)
        .where(ConversationModel.user_id == user_id)
        .order_by(ConversationModel.updated_at.desc())
    )
    return [Conversation.model_validate(c) for c in result.scalars().all()]


async def get_conversation(
    session: AsyncSession, conversation_id: str, user_id: str
) -> Conversation | None:
    """Get one of the user's conversations, or None."""
    result = await session.execute(
        select(ConversationModel).where(
            ConversationModel.id == conversation_id,
            ConversationModel.user_id == user_id,
        )
    )
    conversation = result.scalar_one_or_none()
    if not conversation:
        return None
    return Conversation.model_validate(conversation)


async def create_conversation(
    session: AsyncSession, user_id: str, title: str | None = None
) -> Conversation:
    """Insert a new conversation. An empty title is stored as NULL."""
    conversation = ConversationModel(
        id=generate_entity_id(PREFIX_CONVERSATION),
        user_id=user_id,
        title=title or None,
    )
    session.add(conversation)
    await session.commit()
    await session.refresh(conversation)

    return Conversation.model_validate(conversation)


async def list_messages(
    session: AsyncSession, conversation_id: str, user_id: str
) -> list[Message]:
    """List the messages of a conversation in chronological order."""
    result = await session.execute(
        select(MessageModel)
        .where(
            MessageModel.conversation_id == conversation_id,
            MessageModel.user_id == user_id,
        )
        .order_by(MessageModel.timestamp.asc())
    )
    return [Message.model_validate(m) for m in result.scalars().all()]


async def insert_message(session: AsyncSession, user_id: str, data: MessageCreate) -> Message:
    """
    Append a message and mark its conversation as recently active.

    Raises:
        DataAccessError: If the conversation does not belong to the user
    """
    now = utcnow()
    result = await session.execute(
        update(ConversationModel)
        .where(
            ConversationModel.id == data.conversation_id,
            ConversationModel.user_id == user_id,
        )
        .values(updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise DataAccessError(f"Conversation {data.conversation_id} not found")

    message = MessageModel(
        id=generate_entity_id(PREFIX_MESSAGE),
        conversation_id=data.conversation_id,
        user_id=user_id,
        content=data.content,
        author=data.author.value,
        timestamp=now,
    )
    session.add(message)
    await session.commit()
    await session.refresh(message)

    return Message.model_validate(message)


async def set_title_if_absent(
    session: AsyncSession, conversation_id: str, user_id: str, title: str
) -> bool:
    """
    Set a conversation's title unless it already has one.

    The ``title IS NULL`` guard lives in the UPDATE itself, so a title is
    written at most once even when two sends race.

    Returns:
        True if the title was written
    """
    result = await session.execute(
        update(ConversationModel)
        .where(
            ConversationModel.id == conversation_id,
            ConversationModel.user_id == user_id,
            ConversationModel.title.is_(None),
        )
        .values(title=title, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount > 0


async def delete_conversation(session: AsyncSession, conversation_id: str, user_id: str) -> None:
    """
    Delete a conversation and all of its messages.

    Raises:
        DataAccessError: If the conversation does not belong to the user
    """
    result = await session.execute(
        delete(ConversationModel)
        .where(
            ConversationModel.id == conversation_id,
            ConversationModel.user_id == user_id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise DataAccessError(f"Conversation {conversation_id} not found")

    # Redundant with ON DELETE CASCADE where foreign keys are enforced
    await session.execute(
        delete(MessageModel)
        .where(
            MessageModel.conversation_id == conversation_id,
            MessageModel.user_id == user_id,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
