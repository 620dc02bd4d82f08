"""
Identity models: the authentication record behind every user.

One row per registered email. The password is stored as a passlib hash.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base, utcnow

# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class IdentityCreate(BaseModel):
    """Schema for registering an identity."""

    email: str
    password: str
    full_name: str | None = None


class Identity(BaseModel):
    """Authenticated user, as exposed to the rest of the app."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str | None = None
    confirmed_at: datetime | None = None
    created_at: datetime

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None


class Registration(BaseModel):
    """Result of a sign-up: the identity and its pending confirmation token."""

    identity: Identity
    confirmation_token: str | None = None


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class IdentityModel(Base):
    """SQLAlchemy model for identities table."""

    __tablename__ = "identities"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)

    confirmation_token: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
