"""
Post translation service.

Handles translation request management for posts: record lookup, the
"translating" placeholder transition, job enqueueing and the host event
hooks fired when posts are created or edited.
"""

from arq.connections import ArqRedis
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from babel_core import get_logger
from babel_core.config import TranslatorSettings, get_settings
from babel_core.schemas import PostTranslationResponse, TranslationMetadata
from babel_database.models import (
    Post,
    PostTranslation,
    PostTranslationValidationError,
    TranslationStatus,
    UserPreferredLanguage,
    is_valid_language_code,
)
from babel_database.models.base import utcnow

logger = get_logger(__name__)

TRANSLATE_POST_TASK = "translate_post_task"


class PostTranslationService:
    """Post translation management service."""

    def __init__(
        self,
        session: AsyncSession,
        redis_pool: ArqRedis | None = None,
        settings: TranslatorSettings | None = None,
    ):
        self.session = session
        self.redis_pool = redis_pool
        self.settings = settings or get_settings()

    async def get_translation(self, post_id: int, language: str) -> PostTranslation | None:
        """
        Get the translation of a post in one language.

        Args:
            post_id: Post ID.
            language: Language code.

        Returns:
            PostTranslation or None if not found.
        """
        stmt = select(PostTranslation).where(
            PostTranslation.post_id == post_id,
            PostTranslation.language == language,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_translations(self, post_id: int) -> list[PostTranslation]:
        """All translations of a post, most recent first."""
        stmt = (
            select(PostTranslation)
            .where(PostTranslation.post_id == post_id)
            .order_by(PostTranslation.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def available_languages(self, post_id: int) -> list[str]:
        """Language codes a post has translation records for."""
        stmt = (
            select(PostTranslation.language)
            .where(PostTranslation.post_id == post_id)
            .order_by(PostTranslation.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_translation(self, post_id: int, language: str) -> bool:
        """
        Delete one translation.

        Returns:
            True if a record was deleted.
        """
        stmt = delete(PostTranslation).where(
            PostTranslation.post_id == post_id,
            PostTranslation.language == language,
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return bool(result.rowcount)

    async def create_translation(self, post_id: int, language: str, **fields) -> PostTranslation:
        """
        Insert a new translation record.

        Raises:
            PostTranslationValidationError: If the language is invalid or the
                post already has a translation in that language.
        """
        translation = PostTranslation(post_id=post_id, language=language, **fields)
        self.session.add(translation)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise PostTranslationValidationError(
                f"Post {post_id} already has a translation for language {language!r}"
            ) from e
        return translation

    async def create_or_update_translation_record(
        self, post_id: int, language: str
    ) -> PostTranslation:
        """
        Put the (post, language) translation into the "translating" state.

        Clears previous content and title and stamps the start time; other
        metadata is merged, never replaced. A concurrent insert of the same
        pair is resolved by updating the winner's row.

        Returns:
            The placeholder record.
        """
        existing = await self.get_translation(post_id, language)
        if existing is None:
            now = utcnow()
            try:
                return await self.create_translation(
                    post_id,
                    language,
                    status=TranslationStatus.TRANSLATING,
                    translated_content="",
                    translated_title="",
                    translation_metadata=TranslationMetadata.merge(
                        None, translating_started_at=now
                    ),
                )
            except PostTranslationValidationError:
                existing = await self.get_translation(post_id, language)
                if existing is None:
                    raise
                logger.bind(
                    post_id=post_id, language=language
                ).info("Translation record created concurrently, updating it")

        now = utcnow()
        existing.status = TranslationStatus.TRANSLATING
        existing.translated_content = ""
        existing.translated_title = ""
        existing.translation_metadata = TranslationMetadata.merge(
            existing.translation_metadata, translating_started_at=now, updated_at=now
        )
        await self.session.commit()
        return existing

    async def enqueue_translation_jobs(
        self, post_id: int, languages: list[str], force_update: bool = False
    ) -> int:
        """
        Queue one translation task per language.

        Jobs are always enqueued; whether an existing translation is
        overwritten is decided by the task through ``force_update``.

        Returns:
            Number of jobs queued.
        """
        if not self.redis_pool or not languages:
            return 0

        queued = 0
        for language in languages:
            try:
                await self.redis_pool.enqueue_job(
                    TRANSLATE_POST_TASK,
                    post_id=post_id,
                    target_language=language,
                    force_update=force_update,
                )
                queued += 1
                logger.bind(
                    post_id=post_id, target_language=language, force_update=force_update
                ).info("Queued translation task")
            except Exception:
                logger.bind(
                    post_id=post_id, target_language=language
                ).exception("Failed to queue translation task")
        return queued

    async def request_translation(
        self, post_id: int, language: str, force_update: bool = False
    ) -> PostTranslationResponse:
        """
        Request translation of a post.

        If a completed translation exists and no update is forced, return
        it as is. Otherwise put the record into "translating" and queue a
        worker task.

        Args:
            post_id: Post ID.
            language: Target language code.
            force_update: Regenerate an existing translation.

        Returns:
            PostTranslationResponse with current status and content.

        Raises:
            PostTranslationValidationError: If the language code is invalid.
            ValueError: If the post is not found.
        """
        if not is_valid_language_code(language):
            raise PostTranslationValidationError(
                f"Language must be a valid language code, got {language!r}"
            )

        post = await self.session.get(Post, post_id)
        if post is None:
            raise ValueError(f"Post {post_id} not found")

        existing = await self.get_translation(post_id, language)
        if existing is not None and existing.is_completed and not force_update:
            return PostTranslationResponse.from_record(existing)

        translation = await self.create_or_update_translation_record(post_id, language)
        await self.enqueue_translation_jobs(post_id, [language], force_update=force_update)
        return PostTranslationResponse.from_record(translation)

    async def handle_post_created(self, post: Post) -> list[PostTranslation]:
        """
        Pre-create placeholders and queue jobs for every auto-translate language.

        Returns:
            The placeholder records, in configured language order.
        """
        if not self.settings.enabled or not (post.raw or "").strip():
            return []

        languages = [
            language
            for language in self.settings.auto_translate_language_list
            if is_valid_language_code(language)
        ]
        if not languages:
            return []

        placeholders = [
            await self.create_or_update_translation_record(post.id, language)
            for language in languages
        ]
        await self.enqueue_translation_jobs(post.id, languages)
        return placeholders

    async def handle_post_edited(self, post: Post) -> list[PostTranslation]:
        """
        Re-translate every language a post already has after an edit.

        Returns:
            The records put back into "translating".
        """
        if not self.settings.enabled or not (post.raw or "").strip():
            return []

        languages = await self.available_languages(post.id)
        if not languages:
            return []

        placeholders = [
            await self.create_or_update_translation_record(post.id, language)
            for language in languages
        ]
        await self.enqueue_translation_jobs(post.id, languages, force_update=True)
        return placeholders

    async def translated_title_for(self, first_post_id: int, user_id: int) -> str | None:
        """
        Translated topic title in a user's preferred language.

        Args:
            first_post_id: ID of the topic's first post.
            user_id: Reading user.

        Returns:
            The completed translated title, or None when the user has no
            enabled preference or no completed title exists.
        """
        if not self.settings.enabled:
            return None

        stmt = select(UserPreferredLanguage).where(UserPreferredLanguage.user_id == user_id)
        preference = (await self.session.execute(stmt)).scalar_one_or_none()
        if preference is None or not preference.enabled or not preference.language:
            return None

        translation = await self.get_translation(first_post_id, preference.language)
        if translation is None or not translation.is_completed:
            return None
        return translation.translated_title or None
