"""
User progress models: XP, level and study streak.

Exactly one row per user (unique user_id). ``level`` is always
``xp // 100 + 1``.
"""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ProgressEventKind(StrEnum):
    """What an XP award did to the user's progress."""

    XP_GAINED = "xp_gained"
    LEVELED_UP = "leveled_up"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class UserProgress(BaseModel):
    """Complete progress entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    xp: int = 0
    level: int = 1
    study_streak: int = 0
    last_study_date: date | None = None
    created_at: datetime
    updated_at: datetime


class LevelProgress(BaseModel):
    """Where a user sits inside their current level."""

    level: int
    xp_into_level: int
    xp_for_next_level: int
    percent: float


class ProgressEvent(BaseModel):
    """Outcome of an XP award."""

    kind: ProgressEventKind
    points: int
    previous_level: int
    progress: UserProgress

    @property
    def leveled_up(self) -> bool:
        return self.kind == ProgressEventKind.LEVELED_UP


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class UserProgressModel(Base, TimestampMixin):
    """SQLAlchemy model for user_progress table."""

    __tablename__ = "user_progress"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    study_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_study_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("xp >= 0", name="xp_non_negative"),
        CheckConstraint("level >= 1", name="level_positive"),
        CheckConstraint("study_streak >= 0", name="streak_non_negative"),
    )
