"""
Conversation management for the signed-in user.

Holds the conversation list, the current conversation and its messages.
Requests may overlap (a delete while a send is in flight, two quick
selections); every request that replaces the current view takes a
generation token, and its result is applied only if no later request has
replaced the view since.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tiacher.db.connection import gateway_session
from tiacher.errors import AuthError, TiacherError
from tiacher.learning.styles import greeting_text
from tiacher.models import Conversation, Identity, Message, MessageAuthor, MessageCreate
from tiacher.services import conversation_service

from .notifications import Notifier
from .results import Result
from .session import SessionManager

logger = logging.getLogger(__name__)

GREETING_ID_PREFIX = "greeting-"


def is_greeting(message: Message) -> bool:
    """True for the synthetic, never-persisted greeting message."""
    return message.id.startswith(GREETING_ID_PREFIX)


class ConversationManager:
    """CRUD and selection over the current user's conversations."""

    def __init__(
        self,
        session: SessionManager,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier | None = None,
    ):
        self._session = session
        self._session_factory = session_factory
        self.notifier = notifier or session.notifier

        self.conversations: list[Conversation] = []
        self.current: Conversation | None = None
        self.messages: list[Message] = []

        self._pending = 0
        self._view_generation = 0
        self._list_generation = 0
        self._create_lock = asyncio.Lock()

        session.on_ready(self._on_session_ready)
        session.on_teardown(self.reset)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _on_session_ready(self, user: Identity) -> None:
        await self.list_conversations()

    def reset(self) -> None:
        """Drop all state; in-flight results become stale."""
        self._view_generation += 1
        self._list_generation += 1
        self.conversations = []
        self.current = None
        self.messages = []

    @property
    def loading(self) -> bool:
        return self._pending > 0

    def _require_user(self) -> Identity:
        if not self._session.user:
            raise AuthError("User not authenticated")
        return self._session.user

    def _begin_view(self) -> int:
        self._view_generation += 1
        return self._view_generation

    def _greeting(self, conversation: Conversation) -> Message:
        return Message(
            id=f"{GREETING_ID_PREFIX}{conversation.id}",
            conversation_id=conversation.id,
            user_id=conversation.user_id,
            author=MessageAuthor.AI,
            content=greeting_text(self._session.learning_style),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_conversations(self) -> Result[list[Conversation]]:
        """Refresh the conversation list (most recently active first)."""
        self._list_generation += 1
        token = self._list_generation
        try:
            user = self._require_user()
            async with gateway_session(self._session_factory) as session:
                conversations = await conversation_service.list_conversations(session, user.id)
        except TiacherError as e:
            logger.error("Error fetching conversations: %s", e)
            self.notifier.error("Could not load conversations", e.message)
            return Result.failure(e)

        if token == self._list_generation:
            self.conversations = conversations
        return Result.success(conversations)

    async def fetch_messages(self, conversation_id: str) -> Result[list[Message]]:
        """Read a conversation's persisted messages without touching local state."""
        self._pending += 1
        try:
            user = self._require_user()
            async with gateway_session(self._session_factory) as session:
                messages = await conversation_service.list_messages(
                    session, conversation_id, user.id
                )
        except TiacherError as e:
            logger.error("Error fetching messages: %s", e)
            self.notifier.error("Could not load messages", e.message)
            return Result.failure(e)
        finally:
            self._pending -= 1

        return Result.success(messages)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_conversation(self, title: str | None = None) -> Result[Conversation]:
        """
        Create a conversation and make it current.

        The message list is seeded with a greeting conditioned on the current
        learning style. The greeting is never persisted.
        """
        async with self._create_lock:
            return await self._create(title)

    async def _create(self, title: str | None = None) -> Result[Conversation]:
        token = self._begin_view()
        try:
            user = self._require_user()
            async with gateway_session(self._session_factory) as session:
                conversation = await conversation_service.create_conversation(
                    session, user.id, title
                )
        except TiacherError as e:
            logger.error("Error creating conversation: %s", e)
            self.notifier.error("Could not create conversation", e.message)
            return Result.failure(e)

        if token == self._view_generation:
            self.current = conversation
            self.messages = [self._greeting(conversation)]

        await self.list_conversations()
        return Result.success(conversation)

    async def ensure_conversation(self) -> Result[Conversation]:
        """
        Return the current conversation, creating one if none is selected.

        Serialised with ``create_conversation``, so concurrent callers create
        at most one conversation and get back the one left current.
        """
        async with self._create_lock:
            if self.current:
                return Result.success(self.current)
            return await self._create()

    async def select_conversation(self, conversation: Conversation) -> Result[list[Message]]:
        """Make ``conversation`` current and load its persisted messages."""
        token = self._begin_view()
        result = await self.fetch_messages(conversation.id)
        if result.ok and token == self._view_generation:
            self.current = conversation
            self.messages = result.value
        return result

    async def send_message(
        self,
        content: str,
        author: MessageAuthor | str,
        conversation_id: str | None = None,
    ) -> Result[Message]:
        """
        Persist a message and append it to the current view.

        Without ``conversation_id`` the message goes to the current
        conversation, which is created first if none is selected. The first
        non-empty user message of an untitled conversation becomes its title.

        Raises:
            ValueError: If author is neither "user" nor "ai"
        """
        author = MessageAuthor(author)

        if conversation_id is None:
            ensured = await self.ensure_conversation()
            if not ensured.ok:
                return Result.failure(ensured.error)
            conversation_id = ensured.value.id

        view = self._view_generation
        try:
            user = self._require_user()
            async with gateway_session(self._session_factory) as session:
                message = await conversation_service.insert_message(
                    session,
                    user.id,
                    MessageCreate(conversation_id=conversation_id, content=content, author=author),
                )
        except TiacherError as e:
            logger.error("Error sending message: %s", e)
            self.notifier.error("Could not send message", e.message)
            return Result.failure(e)

        if author == MessageAuthor.USER and content.strip():
            await self._title_from_first_message(user.id, conversation_id, content)

        if (
            view == self._view_generation
            and self.current is not None
            and self.current.id == conversation_id
        ):
            self.messages = [*self.messages, message]

        await self.list_conversations()
        return Result.success(message)

    def _known_title(self, conversation_id: str) -> str | None:
        if self.current and self.current.id == conversation_id:
            return self.current.title
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation.title
        return None

    async def _title_from_first_message(
        self, user_id: str, conversation_id: str, content: str
    ) -> None:
        if self._known_title(conversation_id):
            return

        title = conversation_service.derive_title(content)
        try:
            async with gateway_session(self._session_factory) as session:
                written = await conversation_service.set_title_if_absent(
                    session, conversation_id, user_id, title
                )
        except TiacherError as e:
            # The message itself is already persisted; the title can be set by a later send
            logger.warning("Could not set title of %s: %s", conversation_id, e)
            return

        if not written:
            return

        if self.current and self.current.id == conversation_id:
            self.current = self.current.model_copy(update={"title": title})
        self.conversations = [
            c.model_copy(update={"title": title}) if c.id == conversation_id else c
            for c in self.conversations
        ]

    async def delete_conversation(self, conversation_id: str) -> Result[None]:
        """
        Delete a conversation and its messages.

        On failure local state is left exactly as it was.
        """
        try:
            user = self._require_user()
            async with gateway_session(self._session_factory) as session:
                await conversation_service.delete_conversation(session, conversation_id, user.id)
        except TiacherError as e:
            logger.error("Error deleting conversation: %s", e)
            self.notifier.error("Could not delete conversation", e.message)
            return Result.failure(e)

        if self.current and self.current.id == conversation_id:
            self._begin_view()
            self.current = None
            self.messages = []
        self.conversations = [c for c in self.conversations if c.id != conversation_id]

        self.notifier.notify("Conversation deleted", "The conversation was removed.")
        await self.list_conversations()
        return Result.success()
