"""
Stateful client-side managers.

These hold what an interactive front-end shows (current user, progress,
conversations, messages) and coordinate the persistence and completion
gateways on its behalf.
"""

from .chat import ChatController, ChatTurn
from .completion import CompletionClient
from .conversations import ConversationManager
from .notifications import Notification, Notifier
from .results import Result
from .session import SessionManager, SessionState

__all__ = [
    "ChatController",
    "ChatTurn",
    "CompletionClient",
    "ConversationManager",
    "Notification",
    "Notifier",
    "Result",
    "SessionManager",
    "SessionState",
]
