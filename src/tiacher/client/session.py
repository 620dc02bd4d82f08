"""
Session and identity management.

The ``SessionManager`` is the explicit session handle the other managers
are built with. It owns the authenticated user, their profile and their
progress, and runs ready/teardown hooks as the session starts and ends.

Lifecycle::

    SIGNED_OUT --sign_in--> AUTHENTICATING --profile+progress loaded--> READY
    READY --sign_out--> SIGNED_OUT
    READY --sign_in--> AUTHENTICATING   (previous session torn down first)
    AUTHENTICATING --any failure--> SIGNED_OUT
"""

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tiacher.db.connection import gateway_session
from tiacher.errors import AuthError, TiacherError
from tiacher.learning.styles import DEFAULT_STYLE
from tiacher.models import (
    Identity,
    IdentityCreate,
    LevelProgress,
    Profile,
    ProfileUpdate,
    ProgressEvent,
    Registration,
    UserProgress,
)
from tiacher.services import auth_service, profile_service, progress_service

from .notifications import Notifier
from .results import Result

logger = logging.getLogger(__name__)

ReadyHook = Callable[[Identity], Awaitable[None]]
TeardownHook = Callable[[], None]


class SessionState(StrEnum):
    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    READY = "ready"


class SessionManager:
    """Authenticated-user lifecycle plus profile and XP state."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier | None = None,
        require_confirmed_email: bool = True,
    ):
        self._session_factory = session_factory
        self.notifier = notifier or Notifier()
        self.require_confirmed_email = require_confirmed_email

        self.state = SessionState.SIGNED_OUT
        self.user: Identity | None = None
        self.profile: Profile | None = None
        self.progress: UserProgress | None = None
        self.loading = False

        self._ready_hooks: list[ReadyHook] = []
        self._teardown_hooks: list[TeardownHook] = []

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def on_ready(self, hook: ReadyHook) -> None:
        """Run ``hook(user)`` every time a session becomes READY."""
        self._ready_hooks.append(hook)

    def on_teardown(self, hook: TeardownHook) -> None:
        """Run ``hook()`` every time a session ends."""
        self._teardown_hooks.append(hook)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.state == SessionState.READY

    @property
    def learning_style(self) -> str:
        if self.profile and self.profile.learning_style:
            return self.profile.learning_style
        return DEFAULT_STYLE.value

    def level_progress(self) -> LevelProgress | None:
        if not self.progress:
            return None
        return progress_service.level_progress(self.progress.xp)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, full_name: str) -> Result[Registration]:
        """
        Register a new identity.

        Nothing is loaded locally; the user still has to confirm and sign in.
        """
        self.loading = True
        try:
            async with gateway_session(self._session_factory) as session:
                registration = await auth_service.register_identity(
                    session,
                    IdentityCreate(email=email, password=password, full_name=full_name),
                    require_confirmation=self.require_confirmed_email,
                )
        except TiacherError as e:
            logger.error("Sign up error: %s", e)
            self.notifier.error("Sign-up failed", e.message or "An unexpected error occurred")
            return Result.failure(e)
        finally:
            self.loading = False

        if registration.confirmation_token:
            self.notifier.notify("Sign-up complete!", "Check your email to confirm your account.")
        else:
            self.notifier.notify("Sign-up complete!", "You can sign in now.")
        return Result.success(registration)

    async def sign_in(self, email: str, password: str) -> Result[Identity]:
        """
        Establish a session and load the user's profile and progress.

        Any session already in place is torn down first, so nothing of the
        previous user survives a switch or a failed attempt.
        """
        if self.user is not None or self.state != SessionState.SIGNED_OUT:
            self._end_session()

        self.loading = True
        self.state = SessionState.AUTHENTICATING
        try:
            async with gateway_session(self._session_factory) as session:
                identity = await auth_service.authenticate(
                    session, email, password, require_confirmed=self.require_confirmed_email
                )
            profile, progress = await self._load_user_data(identity.id)
        except TiacherError as e:
            logger.error("Sign in error: %s", e)
            self._end_session()
            self.notifier.error("Sign-in failed", e.message or "Incorrect email or password")
            return Result.failure(e)
        finally:
            self.loading = False

        self.user = identity
        self.profile = profile
        self.progress = progress
        self.state = SessionState.READY
        self.notifier.notify("Signed in!", "Welcome back to TIAcher!")

        for hook in self._ready_hooks:
            await hook(identity)

        return Result.success(identity)

    async def _load_user_data(self, user_id: str) -> tuple[Profile, UserProgress]:
        async with gateway_session(self._session_factory) as session:
            profile = await profile_service.get_profile(session, user_id)
        async with gateway_session(self._session_factory) as session:
            progress = await progress_service.get_or_create_progress(session, user_id)
        return profile, progress

    async def refresh_user_data(self) -> Result[UserProgress]:
        """Re-read profile and progress for the signed-in user."""
        if not self.user:
            return Result.failure(AuthError("No active session"))

        user_id = self.user.id
        try:
            profile, progress = await self._load_user_data(user_id)
        except TiacherError as e:
            logger.error("Error fetching user data: %s", e)
            self.notifier.error("Could not load user data", "Try reloading")
            return Result.failure(e)

        # Signed out (or switched user) while loading
        if not self.user or self.user.id != user_id:
            return Result.failure(AuthError("Session ended while loading"))

        self.profile = profile
        self.progress = progress
        return Result.success(progress)

    async def sign_out(self) -> Result[None]:
        """Tear down the session and clear all user state."""
        was_signed_in = self.user is not None
        self._end_session()
        if was_signed_in:
            self.notifier.notify("Signed out", "See you soon!")
        return Result.success()

    def _end_session(self) -> None:
        self.state = SessionState.SIGNED_OUT
        self.user = None
        self.profile = None
        self.progress = None
        for hook in self._teardown_hooks:
            hook()

    async def update_profile(self, **updates) -> Result[Profile]:
        """Persist a partial profile update, then merge it into local state."""
        try:
            if not self.user:
                raise AuthError("User not authenticated")
            patch = ProfileUpdate(**updates)
            async with gateway_session(self._session_factory) as session:
                profile = await profile_service.update_profile(session, self.user.id, patch)
        except TiacherError as e:
            logger.error("Update profile error: %s", e)
            self.notifier.error("Could not update profile", e.message)
            return Result.failure(e)

        self.profile = profile
        self.notifier.notify("Profile updated!", "Your preferences were saved.")
        return Result.success(profile)

    async def set_learning_style(self, style: str) -> Result[Profile]:
        """Change the learning style used for all subsequent sends."""
        return await self.update_profile(learning_style=style)

    async def add_xp(self, points: int) -> Result[ProgressEvent] | None:
        """
        Award XP and recompute the level.

        Returns None (no-op) when nobody is signed in or progress is not
        loaded yet.
        """
        if not self.user or not self.progress:
            return None

        user_id = self.user.id
        try:
            async with gateway_session(self._session_factory) as session:
                event = await progress_service.award_xp(session, user_id, points)
        except TiacherError as e:
            logger.error("Add XP error: %s", e)
            self.notifier.error("Could not add XP", e.message)
            return Result.failure(e)

        if self.user and self.user.id == user_id:
            self.progress = event.progress

        if event.leveled_up:
            self.notifier.notify(
                "🎉 Level up!", f"Congratulations! You reached level {event.progress.level}!"
            )
        else:
            self.notifier.notify("✨ XP gained!", f"+{points} XP for the interaction!")

        return Result.success(event)
