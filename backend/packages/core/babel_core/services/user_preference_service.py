"""
User preference service.

Handles a user's preferred reading language and the first-login prompt
asking them to choose one.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from babel_core import get_logger
from babel_core.schemas import UserPreferenceResponse
from babel_database.models import (
    PostTranslationValidationError,
    User,
    UserPreferredLanguage,
    is_valid_language_code,
)

from .notification import TranslationNotifier

logger = get_logger(__name__)


class UserPreferenceService:
    """User language preference service."""

    def __init__(self, session: AsyncSession, notifier: TranslationNotifier | None = None):
        self.session = session
        self.notifier = notifier

    async def _get_record(self, user_id: int) -> UserPreferredLanguage | None:
        stmt = select(UserPreferredLanguage).where(UserPreferredLanguage.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_preference(self, user_id: int) -> UserPreferenceResponse:
        """
        Get a user's language preference.

        Returns:
            The stored preference, or the defaults (no language, enabled).
        """
        record = await self._get_record(user_id)
        if record is None:
            return UserPreferenceResponse()
        return UserPreferenceResponse.model_validate(record)

    async def set_preference(
        self,
        user_id: int,
        language: str | None = None,
        enabled: bool | None = None,
    ) -> UserPreferenceResponse:
        """
        Create or update a user's language preference.

        Args:
            user_id: User ID.
            language: New language code; None leaves it unchanged.
            enabled: New enabled flag; None leaves it unchanged.

        Returns:
            The updated preference.

        Raises:
            PostTranslationValidationError: If the language code is invalid.
        """
        if language is not None and not is_valid_language_code(language):
            raise PostTranslationValidationError(
                f"Language must be a valid language code, got {language!r}"
            )

        record = await self._get_record(user_id)
        if record is None:
            record = UserPreferredLanguage(user_id=user_id)
            self.session.add(record)

        if language is not None:
            record.language = language
        if enabled is not None:
            record.enabled = enabled
        elif record.enabled is None:
            record.enabled = True

        await self.session.commit()
        logger.bind(
            user_id=user_id, language=record.language, enabled=record.enabled
        ).info("Updated language preference")
        return UserPreferenceResponse.model_validate(record)

    async def handle_user_logged_in(self, user: User) -> bool:
        """
        Prompt a user without a stored preference to pick a language.

        Returns:
            True if a prompt was published.
        """
        if self.notifier is None:
            return False
        if await self._get_record(user.id) is not None:
            return False
        return await self.notifier.prompt_language_preference(user.id, user.username)
