"""
Translation notifications.

Publishes progress events over Redis pub/sub. Delivery is best-effort:
a publish failure is logged and never reaches the caller.
"""

import json
from datetime import UTC, datetime
from typing import Any

from redis.asyncio import Redis

from babel_core import get_logger
from babel_core.redis_keys import RedisKeys
from babel_core.schemas import (
    LanguagePreferencePrompt,
    NotificationStatus,
    PostTranslationResponse,
    TranslationStatusEvent,
)

logger = get_logger(__name__)


class TranslationNotifier:
    """Fire-and-forget publisher for translation events."""

    def __init__(self, redis: Redis | None):
        self.redis = redis

    async def _publish(self, channel: str, payload: dict[str, Any]) -> bool:
        if self.redis is None:
            return False
        try:
            await self.redis.publish(channel, json.dumps(payload, ensure_ascii=False))
            return True
        except Exception:
            logger.bind(channel=channel).exception("Failed to publish translation notification")
            return False

    async def notify_status(
        self,
        topic_id: int,
        post_id: int,
        target_language: str,
        status: NotificationStatus,
        translation_id: str | None = None,
        error: str | None = None,
        translated_content: str | None = None,
    ) -> bool:
        """
        Publish a status event on the topic channel.

        Returns:
            True when the event was handed to Redis.
        """
        event = TranslationStatusEvent(
            post_id=post_id,
            target_language=target_language,
            status=status,
            timestamp=datetime.now(UTC),
            translation_id=translation_id,
            error=error,
            translated_content=translated_content,
        )
        return await self._publish(
            RedisKeys.topic_translation_channel(topic_id), event.to_payload()
        )

    async def publish_translation(self, translation: PostTranslationResponse) -> bool:
        """Publish a completed translation object on the post channel."""
        return await self._publish(
            RedisKeys.post_translation_channel(translation.post_id),
            translation.model_dump(mode="json"),
        )

    async def prompt_language_preference(self, user_id: int, username: str) -> bool:
        """Ask a user's clients to show the preferred-language prompt."""
        prompt = LanguagePreferencePrompt(user_id=user_id, username=username)
        return await self._publish(
            RedisKeys.language_preference_prompt(user_id), prompt.model_dump(mode="json")
        )
