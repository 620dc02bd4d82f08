"""
Identity and authentication service.

Stands in for the hosted auth service: registration, password sign-in and
email confirmation. Registration also creates the user's profile row.
"""

import logging
import re

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tiacher.errors import AuthError
from tiacher.models import (
    Identity,
    IdentityCreate,
    IdentityModel,
    ProfileModel,
    Registration,
)
from tiacher.models.base import utcnow
from tiacher.utils.ids import PREFIX_CONFIRMATION, PREFIX_USER, generate_entity_id

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def _get_by_email(session: AsyncSession, email: str) -> IdentityModel | None:
    result = await session.execute(select(IdentityModel).where(IdentityModel.email == email))
    return result.scalar_one_or_none()


async def register_identity(
    session: AsyncSession,
    data: IdentityCreate,
    require_confirmation: bool = True,
) -> Registration:
    """
    Register a new identity and its profile.

    Args:
        session: Database session
        data: Email, password and optional full name
        require_confirmation: Leave the identity unconfirmed and issue a token

    Returns:
        The identity and, when confirmation is required, its confirmation token

    Raises:
        AuthError: Invalid email, weak password, or email already registered
    """
    email = _normalize_email(data.email)
    if not EMAIL_PATTERN.match(email):
        raise AuthError("Unable to validate email address: invalid format")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

    if await _get_by_email(session, email):
        raise AuthError("User already registered")

    token = None if not require_confirmation else generate_entity_id(PREFIX_CONFIRMATION)
    identity = IdentityModel(
        id=generate_entity_id(PREFIX_USER),
        email=email,
        password_hash=_pwd_context.hash(data.password),
        full_name=data.full_name,
        confirmation_token=token,
        confirmed_at=None if require_confirmation else utcnow(),
    )
    session.add(identity)
    session.add(ProfileModel(id=identity.id, email=email, full_name=data.full_name))

    try:
        await session.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email
        await session.rollback()
        raise AuthError("User already registered")

    await session.refresh(identity)
    logger.info("Registered identity %s (confirmation required: %s)", identity.id, bool(token))

    return Registration(identity=Identity.model_validate(identity), confirmation_token=token)


async def authenticate(
    session: AsyncSession,
    email: str,
    password: str,
    require_confirmed: bool = True,
) -> Identity:
    """
    Verify email and password.

    Raises:
        AuthError: Unknown email, wrong password, or unconfirmed email
    """
    identity = await _get_by_email(session, _normalize_email(email))
    if not identity or not _pwd_context.verify(password, identity.password_hash):
        raise AuthError("Invalid login credentials")

    if require_confirmed and identity.confirmed_at is None:
        raise AuthError("Email not confirmed")

    return Identity.model_validate(identity)


async def confirm_email(session: AsyncSession, token: str) -> Identity:
    """
    Confirm an identity using the token issued at registration.

    Raises:
        AuthError: Token unknown or already used
    """
    result = await session.execute(
        select(IdentityModel).where(IdentityModel.confirmation_token == token)
    )
    identity = result.scalar_one_or_none()
    if not identity:
        raise AuthError("Email link is invalid or has expired")

    identity.confirmed_at = utcnow()
    identity.confirmation_token = None
    await session.commit()
    await session.refresh(identity)

    return Identity.model_validate(identity)


async def confirm_email_for_address(session: AsyncSession, email: str) -> Identity:
    """
    Confirm an identity by email address (admin path).

    Raises:
        AuthError: No identity with that email
    """
    identity = await _get_by_email(session, _normalize_email(email))
    if not identity:
        raise AuthError(f"No user registered with email {email}")

    if identity.confirmed_at is None:
        identity.confirmed_at = utcnow()
        identity.confirmation_token = None
        await session.commit()
        await session.refresh(identity)

    return Identity.model_validate(identity)


async def get_identity(session: AsyncSession, user_id: str) -> Identity | None:
    """Get an identity by ID, or None."""
    identity = await session.get(IdentityModel, user_id)
    if not identity:
        return None
    return Identity.model_validate(identity)


async def get_identity_by_email(session: AsyncSession, email: str) -> Identity | None:
    """Get an identity by email, or None."""
    identity = await _get_by_email(session, _normalize_email(email))
    if not identity:
        return None
    return Identity.model_validate(identity)
