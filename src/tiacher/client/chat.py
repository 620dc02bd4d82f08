"""
One chat turn: the user's question, the tutor's answer and the XP award.
"""

from dataclasses import dataclass

from tiacher.models import Conversation, Message, MessageAuthor, ProgressEvent
from tiacher.settings import get_settings

from .completion import CompletionClient
from .conversations import ConversationManager
from .results import Result
from .session import SessionManager


@dataclass
class ChatTurn:
    """Everything a completed turn produced."""

    conversation: Conversation
    user_message: Message
    ai_message: Message
    used_fallback: bool = False
    progress_event: ProgressEvent | None = None


class ChatController:
    """Runs chat turns against the current conversation."""

    def __init__(
        self,
        session: SessionManager,
        conversations: ConversationManager,
        completion: CompletionClient,
        xp_per_turn: int | None = None,
    ):
        self.session = session
        self.conversations = conversations
        self.completion = completion
        self.xp_per_turn = xp_per_turn or get_settings().xp_per_chat_turn
        self.is_loading = False

    async def send(self, text: str) -> Result[ChatTurn] | None:
        """
        Run one turn.

        1. ensure a conversation exists
        2. persist the user's message
        3. ask the completion gateway (placeholder answer on failure)
        4. persist the tutor's answer
        5. award XP

        Returns None for blank input.
        """
        if not text.strip():
            return None

        self.is_loading = True
        try:
            ensured = await self.conversations.ensure_conversation()
            if not ensured.ok:
                return Result.failure(ensured.error)
            conversation = ensured.value

            sent = await self.conversations.send_message(
                text, MessageAuthor.USER, conversation_id=conversation.id
            )
            if not sent.ok:
                return Result.failure(sent.error)

            # Read at send time so a style change applies to the next turn
            style = self.session.learning_style
            answer, used_fallback = await self.completion.complete_or_fallback(text, style)

            replied = await self.conversations.send_message(
                answer, MessageAuthor.AI, conversation_id=conversation.id
            )
            if not replied.ok:
                return Result.failure(replied.error)

            awarded = await self.session.add_xp(self.xp_per_turn)
            event = awarded.value if awarded is not None and awarded.ok else None

            return Result.success(
                ChatTurn(
                    conversation=conversation,
                    user_message=sent.value,
                    ai_message=replied.value,
                    used_fallback=used_fallback,
                    progress_event=event,
                )
            )
        finally:
            self.is_loading = False
