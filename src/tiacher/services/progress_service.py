"""
XP and level management.

Handles lazy creation of the per-user progress row and XP awards.
Level is a pure function of XP: ``xp // 100 + 1``.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tiacher.errors import DataAccessError
from tiacher.models import (
    LevelProgress,
    ProgressEvent,
    ProgressEventKind,
    UserProgress,
    UserProgressModel,
)
from tiacher.models.base import utcnow
from tiacher.utils.ids import PREFIX_PROGRESS, generate_entity_id

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100


def level_for_xp(xp: int) -> int:
    """
    Level reached with ``xp`` experience points.

    Examples:
        >>> level_for_xp(0), level_for_xp(99), level_for_xp(100), level_for_xp(250)
        (1, 1, 2, 3)
    """
    if xp < 0:
        raise ValueError(f"XP cannot be negative, got {xp}")
    return xp // XP_PER_LEVEL + 1


def level_progress(xp: int) -> LevelProgress:
    """Position inside the current level, as shown on the progress bar."""
    into_level = xp % XP_PER_LEVEL
    return LevelProgress(
        level=level_for_xp(xp),
        xp_into_level=into_level,
        xp_for_next_level=XP_PER_LEVEL - into_level,
        percent=into_level / XP_PER_LEVEL * 100,
    )


async def _fetch_progress(session: AsyncSession, user_id: str) -> UserProgressModel | None:
    result = await session.execute(
        select(UserProgressModel).where(UserProgressModel.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_progress(session: AsyncSession, user_id: str) -> UserProgress | None:
    """
    Get the progress row of a user.

    Returns:
        Progress or None if it has not been created yet
    """
    progress = await _fetch_progress(session, user_id)
    if not progress:
        return None
    return UserProgress.model_validate(progress)


async def get_or_create_progress(session: AsyncSession, user_id: str) -> UserProgress:
    """
    Get or create the progress row for a user.

    Lazy initialization: a missing row is created with xp=0, level=1,
    study_streak=0. Two concurrent sign-ins may both miss on the read; the
    loser hits the unique user_id constraint and re-reads the winner's row.

    Args:
        session: Database session
        user_id: Owning user ID

    Returns:
        Progress record
    """
    progress = await _fetch_progress(session, user_id)
    if progress:
        return UserProgress.model_validate(progress)

    progress = UserProgressModel(
        id=generate_entity_id(PREFIX_PROGRESS),
        user_id=user_id,
        xp=0,
        level=1,
        study_streak=0,
    )
    session.add(progress)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.info("Progress row for %s created concurrently, re-fetching", user_id)
        progress = await _fetch_progress(session, user_id)
        if not progress:
            raise DataAccessError(f"Progress for user {user_id} could not be created")
    else:
        await session.commit()
        await session.refresh(progress)

    return UserProgress.model_validate(progress)


async def award_xp(session: AsyncSession, user_id: str, points: int) -> ProgressEvent:
    """
    Add ``points`` XP and recompute the level in one atomic UPDATE.

    Args:
        session: Database session
        user_id: Owning user ID
        points: Positive number of XP points

    Returns:
        ProgressEvent: LEVELED_UP when the level increased, else XP_GAINED

    Raises:
        ValueError: If points is not a positive integer
        DataAccessError: If the user has no progress row
    """
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise ValueError(f"XP points must be a positive integer, got {points!r}")

    # xp and level as written by this UPDATE, not as re-read after commit
    new_xp = UserProgressModel.xp + points
    result = await session.execute(
        update(UserProgressModel)
        .where(UserProgressModel.user_id == user_id)
        .values(xp=new_xp, level=new_xp // XP_PER_LEVEL + 1, updated_at=utcnow())
        .returning(*UserProgressModel.__table__.columns)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        await session.rollback()
        raise DataAccessError(f"Progress for user {user_id} not found")

    await session.commit()
    updated = UserProgress.model_validate(row)

    previous_level = level_for_xp(updated.xp - points)
    kind = (
        ProgressEventKind.LEVELED_UP
        if updated.level > previous_level
        else ProgressEventKind.XP_GAINED
    )

    return ProgressEvent(kind=kind, points=points, previous_level=previous_level, progress=updated)
