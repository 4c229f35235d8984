"""Translation worker tasks.

Runs the per-(post, language) translation lifecycle: put the record into
"translating", notify subscribers, call the translation service and store
the outcome as "completed" or "failed". Nothing raised inside a task
escapes to the job runner.
"""

import random
import time
from datetime import timedelta
from typing import Any

import httpx
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from babel_core import get_logger
from babel_core.config import TranslatorSettings, get_settings
from babel_core.schemas import (
    NotificationStatus,
    PostTranslationResponse,
    TranslationFailure,
    TranslationMetadata,
    TranslationResult,
)
from babel_core.services import PostTranslationService, TranslationNotifier, TranslationService
from babel_core.services.post_translation_service import TRANSLATE_POST_TASK
from babel_core.translation_logger import TranslationLogger
from babel_database.models import Post, PostTranslation, Topic, TranslationStatus
from babel_database.models.base import utcnow
from babel_database.models.post_translation import DEFAULT_PROVIDER
from babel_database.session import get_session_context

logger = get_logger(__name__)

# Skip reasons written to the translation log
SKIP_INVALID_ARGUMENTS = "invalid_arguments"
SKIP_POST_NOT_FOUND = "post_not_found"
SKIP_POST_DELETED_OR_HIDDEN = "post_deleted_or_hidden"
SKIP_ALREADY_EXISTS = "translation_already_exists"

# Random delay range (seconds) for batch-enqueued jobs
BATCH_DEFER_SECONDS = (1, 5)


def _skipped(post_id: Any, target_language: str | None, reason: str, **extra: Any) -> dict[str, Any]:
    TranslationLogger.log_translation_skipped(post_id, target_language, reason)
    logger.bind(
        post_id=post_id, target_language=target_language, reason=reason
    ).info("Translation skipped")
    return {"status": "skipped", "reason": reason, **extra}


class TranslationJob:
    """Lifecycle manager for one (post, language) translation run."""

    def __init__(
        self,
        session: AsyncSession,
        translation_service: TranslationService,
        notifier: TranslationNotifier,
        settings: TranslatorSettings,
    ):
        self.session = session
        self.translation_service = translation_service
        self.notifier = notifier
        self.settings = settings
        self.post_service = PostTranslationService(session, settings=settings)

    @classmethod
    def from_context(
        cls, ctx: dict[str, Any], session: AsyncSession, settings: TranslatorSettings
    ) -> "TranslationJob":
        """Build a job from the worker context (redis pool, shared HTTP client)."""
        redis: Redis | None = ctx.get("redis")
        http_client: httpx.AsyncClient = ctx["http_client"]
        service = TranslationService.from_settings(settings, http_client, redis)
        return cls(session, service, TranslationNotifier(redis), settings)

    async def run(
        self, post_id: int | None, target_language: str | None, force_update: bool = False
    ) -> dict[str, Any]:
        """
        Run the lifecycle. Never raises.

        Returns:
            Result dictionary with status ("completed", "failed",
            "skipped" or "error").
        """
        start = time.perf_counter()
        try:
            return await self._run(post_id, target_language, force_update, start)
        except Exception as e:
            logger.bind(
                post_id=post_id, target_language=target_language
            ).exception("Unexpected translation error")
            await self._record_unexpected_failure(post_id, target_language, e, start)
            return {
                "status": "error",
                "post_id": post_id,
                "error": str(e),
                "error_class": type(e).__name__,
            }

    async def _run(
        self, post_id: int | None, target_language: str | None, force_update: bool, start: float
    ) -> dict[str, Any]:
        if not post_id or not target_language or not target_language.strip():
            return _skipped(post_id, target_language, SKIP_INVALID_ARGUMENTS)

        post = await self.session.get(Post, post_id)
        if post is None:
            return _skipped(post_id, target_language, SKIP_POST_NOT_FOUND)
        if not post.is_visible:
            return _skipped(post_id, target_language, SKIP_POST_DELETED_OR_HIDDEN)

        existing = await self.post_service.get_translation(post_id, target_language)
        if existing is not None and existing.is_completed and not force_update:
            return _skipped(
                post_id,
                target_language,
                SKIP_ALREADY_EXISTS,
                translation_id=existing.id,
                translated_content=existing.translated_content,
            )

        topic = await self.session.get(Topic, post.topic_id)
        # Read before the placeholder write: a concurrent insert rolls the session back
        # and expires the loaded post
        topic_id = post.topic_id
        content = post.cooked or ""
        title = self._title_for(post, topic)

        translation = await self.post_service.create_or_update_translation_record(
            post_id, target_language
        )
        TranslationLogger.log_translation_started(
            post_id, target_language, content_length=len(content), force_update=force_update
        )
        logger.bind(
            post_id=post_id, target_language=target_language, force_update=force_update
        ).info("Starting translation task")
        await self.notifier.notify_status(
            topic_id,
            post_id,
            target_language,
            NotificationStatus.STARTED,
            translation_id=translation.id,
        )

        result = await self.translation_service.translate(
            content, target_language, title, post_id=post_id
        )
        processing_time_ms = round((time.perf_counter() - start) * 1000, 2)

        if isinstance(result, TranslationFailure):
            return await self._fail(post_id, topic_id, translation, result, processing_time_ms)
        return await self._complete(
            post_id, topic_id, translation, result, processing_time_ms, force_update
        )

    def _title_for(self, post: Post, topic: Topic | None) -> str | None:
        """Topic title to translate: first post only, when enabled and non-blank."""
        if not self.settings.translate_title or not post.is_first_post or topic is None:
            return None
        title = (topic.title or "").strip()
        return title or None

    async def _complete(
        self,
        post_id: int,
        topic_id: int,
        translation: PostTranslation,
        result: TranslationResult,
        processing_time_ms: float,
        force_update: bool,
    ) -> dict[str, Any]:
        now = utcnow()
        translation.status = TranslationStatus.COMPLETED
        translation.translated_content = result.translated_content
        translation.translated_title = result.translated_title
        translation.source_language = result.source_language
        translation.translation_provider = result.provider_info.provider or DEFAULT_PROVIDER
        translation.translation_metadata = TranslationMetadata.merge(
            translation.translation_metadata,
            confidence=result.confidence,
            provider_info=result.provider_info,
            translated_at=now,
            updated_at=now,
            processing_time_ms=processing_time_ms,
            error=None,
            error_kind=None,
            error_class=None,
        )
        await self.session.commit()

        TranslationLogger.log_translation_completed(
            post_id,
            translation.language,
            translation_id=translation.id,
            processing_time_ms=processing_time_ms,
            ai_model=result.provider_info.model,
            tokens_used=result.provider_info.tokens_used,
            translated_length=len(result.translated_content),
            force_update=force_update,
        )
        logger.bind(
            post_id=post_id,
            target_language=translation.language,
            processing_time_ms=processing_time_ms,
        ).info("Translation completed successfully")

        await self.notifier.notify_status(
            topic_id,
            post_id,
            translation.language,
            NotificationStatus.COMPLETED,
            translation_id=translation.id,
            translated_content=translation.translated_content,
        )
        await self.notifier.publish_translation(PostTranslationResponse.from_record(translation))
        return {"status": "completed", "post_id": post_id, "translation_id": translation.id}

    async def _fail(
        self,
        post_id: int,
        topic_id: int,
        translation: PostTranslation,
        failure: TranslationFailure,
        processing_time_ms: float,
    ) -> dict[str, Any]:
        now = utcnow()
        translation.status = TranslationStatus.FAILED
        translation.translation_metadata = TranslationMetadata.merge(
            translation.translation_metadata,
            error=failure.message,
            error_kind=failure.kind.value,
            failed_at=now,
            updated_at=now,
            processing_time_ms=processing_time_ms,
        )
        await self.session.commit()

        TranslationLogger.log_translation_failed(
            post_id,
            translation.language,
            error_message=failure.message,
            error_class=failure.kind.value,
            processing_time_ms=processing_time_ms,
        )
        logger.bind(
            post_id=post_id,
            target_language=translation.language,
            error=failure.message,
            error_kind=failure.kind.value,
        ).error("Translation failed")

        await self.notifier.notify_status(
            topic_id,
            post_id,
            translation.language,
            NotificationStatus.FAILED,
            translation_id=translation.id,
            error=failure.message,
        )
        return {
            "status": "failed",
            "post_id": post_id,
            "translation_id": translation.id,
            "error": failure.message,
            "error_kind": failure.kind.value,
        }

    async def _record_unexpected_failure(
        self, post_id: Any, target_language: str | None, error: Exception, start: float
    ) -> None:
        """Best-effort: mark the record failed with the exception class and message."""
        processing_time_ms = round((time.perf_counter() - start) * 1000, 2)
        TranslationLogger.log_translation_failed(
            post_id,
            target_language,
            error_message=str(error),
            error_class=type(error).__name__,
            processing_time_ms=processing_time_ms,
            context={"phase": "job_exception"},
        )
        if not post_id or not target_language:
            return

        try:
            await self.session.rollback()
            translation = await self.post_service.get_translation(post_id, target_language)
            if translation is None:
                return
            now = utcnow()
            translation.status = TranslationStatus.FAILED
            translation.translation_metadata = TranslationMetadata.merge(
                translation.translation_metadata,
                error=str(error) or type(error).__name__,
                error_class=type(error).__name__,
                failed_at=now,
                updated_at=now,
            )
            await self.session.commit()

            post = await self.session.get(Post, post_id)
            if post is not None:
                await self.notifier.notify_status(
                    post.topic_id,
                    post_id,
                    target_language,
                    NotificationStatus.FAILED,
                    translation_id=translation.id,
                    error=str(error),
                )
        except Exception:
            logger.bind(
                post_id=post_id, target_language=target_language
            ).exception("Failed to record translation failure")


async def translate_post_task(
    ctx: dict[str, Any],
    post_id: int,
    target_language: str,
    force_update: bool = False,
) -> dict[str, Any]:
    """
    Translate a post into one language.

    Args:
        ctx: Worker context (``redis``, ``http_client``, ``settings``).
        post_id: Post ID.
        target_language: Target language code.
        force_update: Regenerate an existing completed translation.

    Returns:
        Result dictionary with status.
    """
    settings: TranslatorSettings = ctx.get("settings") or get_settings()
    try:
        async with get_session_context() as session:
            job = TranslationJob.from_context(ctx, session, settings)
            return await job.run(post_id, target_language, force_update)
    except Exception as e:
        logger.bind(
            post_id=post_id, target_language=target_language
        ).exception("Translation task crashed")
        return {"status": "error", "post_id": post_id, "error": str(e)}


async def batch_translate_posts_task(
    ctx: dict[str, Any],
    post_ids: list[int],
    target_languages: list[str],
) -> dict[str, int]:
    """
    Queue translation of many posts into many languages.

    Each job is deferred by a random few seconds to spread rate-limit
    pressure.

    Args:
        ctx: Worker context.
        post_ids: Posts to translate.
        target_languages: Language codes.

    Returns:
        Dictionary with the number of jobs queued.
    """
    if not post_ids or not target_languages:
        return {"jobs_queued": 0}

    queued = 0
    for post_id in post_ids:
        for language in target_languages:
            await ctx["redis"].enqueue_job(
                TRANSLATE_POST_TASK,
                post_id=post_id,
                target_language=language,
                _defer_by=timedelta(seconds=random.randint(*BATCH_DEFER_SECONDS)),
            )
            queued += 1

    logger.bind(
        posts=len(post_ids), languages=len(target_languages), jobs=queued
    ).info("Queued batch translation")
    return {"jobs_queued": queued}
