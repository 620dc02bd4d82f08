"""
TIAcher models.

Exports all Pydantic and SQLAlchemy models for easy importing.
"""

from .base import Base, TimestampMixin

# Conversation / Message
from .conversation import (
    Conversation,
    ConversationModel,
    Message,
    MessageAuthor,
    MessageCreate,
    MessageModel,
)

# Identity
from .identity import Identity, IdentityCreate, IdentityModel, Registration

# Profile
from .profile import Profile, ProfileModel, ProfileUpdate

# Progress
from .progress import (
    LevelProgress,
    ProgressEvent,
    ProgressEventKind,
    UserProgress,
    UserProgressModel,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Conversation
    "Conversation",
    "ConversationModel",
    "Message",
    "MessageAuthor",
    "MessageCreate",
    "MessageModel",
    # Identity
    "Identity",
    "IdentityCreate",
    "IdentityModel",
    "Registration",
    # Profile
    "Profile",
    "ProfileModel",
    "ProfileUpdate",
    # Progress
    "LevelProgress",
    "ProgressEvent",
    "ProgressEventKind",
    "UserProgress",
    "UserProgressModel",
]
