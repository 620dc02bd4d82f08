"""
Profile models.

One profile per identity; ``learning_style`` conditions the tutor's answers.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from tiacher.learning.styles import DEFAULT_STYLE

from .base import Base, TimestampMixin

# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class ProfileUpdate(BaseModel):
    """Partial profile update. Unset fields are left untouched."""

    full_name: str | None = None
    avatar_url: str | None = None
    learning_style: str | None = None


class Profile(BaseModel):
    """Complete profile entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    learning_style: str = DEFAULT_STYLE.value
    created_at: datetime
    updated_at: datetime


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ProfileModel(Base, TimestampMixin):
    """SQLAlchemy model for profiles table."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String, ForeignKey("identities.id", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)
    # Open string: unknown styles are accepted and fall back to generic prompting
    learning_style: Mapped[str] = mapped_column(
        String, nullable=False, default=DEFAULT_STYLE.value
    )
