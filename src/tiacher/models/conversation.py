"""
Conversation and message models.

Conversations are user-owned chat threads; messages are append-only and
read back in timestamp order.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import Base, TimestampMixin, utcnow


class MessageAuthor(StrEnum):
    """Who wrote a message."""

    USER = "user"
    AI = "ai"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class Conversation(BaseModel):
    """Complete conversation entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    """Schema for appending a message to a conversation."""

    conversation_id: str
    content: str
    author: MessageAuthor


class Message(BaseModel):
    """Complete message entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    user_id: str
    content: str
    author: MessageAuthor
    timestamp: datetime = Field(default_factory=utcnow)


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ConversationModel(Base, TimestampMixin):
    """SQLAlchemy model for conversations table."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    messages: Mapped[list["MessageModel"]] = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_conversations_user_updated", "user_id", "updated_at"),)


class MessageModel(Base):
    """SQLAlchemy model for messages table."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    conversation_id: Mapped[str] = mapped_column(
        String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    conversation: Mapped["ConversationModel"] = relationship(
        "ConversationModel", back_populates="messages"
    )

    __table_args__ = (
        CheckConstraint("author IN ('user', 'ai')", name="author_valid"),
        Index("idx_messages_conversation_timestamp", "conversation_id", "timestamp"),
    )
