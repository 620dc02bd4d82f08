"""
Profile persistence.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from tiacher.errors import DataAccessError
from tiacher.models import Profile, ProfileModel, ProfileUpdate


async def get_profile(session: AsyncSession, user_id: str) -> Profile:
    """
    Get the profile of a user.

    Raises:
        DataAccessError: If the profile does not exist
    """
    profile = await session.get(ProfileModel, user_id)
    if not profile:
        raise DataAccessError(f"Profile for user {user_id} not found")
    return Profile.model_validate(profile)


async def update_profile(session: AsyncSession, user_id: str, updates: ProfileUpdate) -> Profile:
    """
    Merge the set fields of ``updates`` into the user's profile.

    Returns:
        The updated profile

    Raises:
        DataAccessError: If the profile does not exist
    """
    profile = await session.get(ProfileModel, user_id)
    if not profile:
        raise DataAccessError(f"Profile for user {user_id} not found")

    for field, value in updates.model_dump(exclude_unset=True).items():
        if field == "learning_style" and value is None:
            continue  # column is NOT NULL
        setattr(profile, field, value)

    await session.commit()
    await session.refresh(profile)

    return Profile.model_validate(profile)
