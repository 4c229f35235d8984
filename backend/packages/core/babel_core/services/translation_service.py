"""
Translation service.

Orchestrates one translation: resolve the model, check the rate limit and
the length budget, call the provider, parse the answer and, when needed,
fall back to a title-only request. Nothing is persisted here.
"""

from typing import Any

import httpx
from redis.asyncio import Redis

from babel_core import get_logger
from babel_core.config import TranslatorSettings
from babel_core.schemas import (
    ParsedTranslation,
    ProviderInfo,
    ResolvedModelConfig,
    TranslationErrorKind,
    TranslationFailure,
    TranslationResult,
)
from babel_core.translation_logger import TranslationLogger, truncate_body

from .html_utils import clean_translated_html
from .model_config import max_content_length, resolve_model_config
from .prompt_builder import build_title_prompt, build_translation_prompt
from .rate_limiter import RateLimiter, RedisCounterStore
from .response_parser import parse_chat_completion
from .translation_providers import (
    TITLE_MAX_TOKENS,
    TITLE_TEMPERATURE,
    ChatCompletionClient,
    map_error_response,
)

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again later."
CONTENT_TOO_LONG_MESSAGE = "Content too long for translation"
EMPTY_TRANSLATION_MESSAGE = "No translation in response"


class TranslationService:
    """Stateless translation orchestrator."""

    def __init__(
        self,
        settings: TranslatorSettings,
        http_client: httpx.AsyncClient,
        rate_limiter: RateLimiter,
    ):
        self.settings = settings
        self.http_client = http_client
        self.rate_limiter = rate_limiter

    @classmethod
    def from_settings(
        cls, settings: TranslatorSettings, http_client: httpx.AsyncClient, redis: Redis
    ) -> "TranslationService":
        """Build a service whose rate limiter counts in Redis."""
        limiter = RateLimiter(RedisCounterStore(redis), settings.rate_limit_per_minute)
        return cls(settings, http_client, limiter)

    async def translate(
        self,
        content: str,
        target_language: str,
        title: str | None = None,
        *,
        post_id: Any = None,
    ) -> TranslationResult | TranslationFailure:
        """
        Translate post content (and optionally its topic title).

        Args:
            content: Post HTML.
            target_language: Target language code.
            title: Topic title, only for the first post of a topic.
            post_id: Used for log context only.

        Returns:
            TranslationResult, or a TranslationFailure describing why the
            translation could not be produced.
        """
        if not content or not content.strip():
            return TranslationFailure(
                kind=TranslationErrorKind.INVALID_INPUT, message="Content is blank"
            )
        if not target_language or not target_language.strip():
            return TranslationFailure(
                kind=TranslationErrorKind.INVALID_INPUT,
                message="Target language not specified",
            )
        title = title if title and title.strip() else None

        config = resolve_model_config(self.settings.preset_model, self.settings)
        if isinstance(config, TranslationFailure):
            logger.bind(
                preset=self.settings.preset_model, error=config.message
            ).error("Translation model is misconfigured")
            return config

        if not await self.rate_limiter.can_make_request():
            return TranslationFailure(
                kind=TranslationErrorKind.RATE_LIMITED, message=RATE_LIMITED_MESSAGE
            )

        total_length = len(content) + (len(title) if title else 0)
        budget = max_content_length(config, self.settings)
        if total_length > budget:
            logger.bind(
                post_id=post_id, length=total_length, budget=budget
            ).info("Content exceeds translation budget")
            return TranslationFailure(
                kind=TranslationErrorKind.CONTENT_TOO_LONG, message=CONTENT_TOO_LONG_MESSAGE
            )

        client = ChatCompletionClient(self.http_client, config)
        prompt = build_translation_prompt(content, target_language, title)
        parsed = await self._request_translation(client, prompt, post_id, target_language)
        if isinstance(parsed, TranslationFailure):
            return parsed

        translated_content = clean_translated_html(parsed.translated_text)
        if not translated_content:
            logger.bind(post_id=post_id).warning("Translated content is empty after cleanup")
            return TranslationFailure(
                kind=TranslationErrorKind.PARSE_ERROR, message=EMPTY_TRANSLATION_MESSAGE
            )

        # A title is only kept when one was asked for
        translated_title = (parsed.translated_title or None) if title else None
        if title and translated_title is None:
            translated_title = await self._translate_title_fallback(
                client, title, target_language, post_id
            )

        return TranslationResult(
            translated_content=translated_content,
            translated_title=translated_title,
            source_language=parsed.source_language,
            confidence=parsed.confidence,
            provider_info=ProviderInfo(
                model=parsed.model or config.model_name,
                tokens_used=parsed.tokens_used,
                provider=config.provider,
            ),
        )

    async def _dispatch(
        self,
        client: ChatCompletionClient,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> httpx.Response:
        """Send a request and count it once the provider has answered."""
        kwargs: dict[str, Any] = {"max_tokens": max_tokens}
        if temperature is not None:
            kwargs["temperature"] = temperature
        response = await client.complete(prompt, **kwargs)
        await self.rate_limiter.record_request()
        return response

    async def _request_translation(
        self,
        client: ChatCompletionClient,
        prompt: str,
        post_id: Any,
        target_language: str,
    ) -> ParsedTranslation | TranslationFailure:
        provider = client.config.provider
        try:
            response = await self._dispatch(client, prompt)
        except httpx.RequestError as e:
            logger.bind(
                post_id=post_id, provider=provider, error=str(e)
            ).error("Provider request failed")
            TranslationLogger.log_translation_failed(
                post_id,
                target_language,
                error_message=str(e),
                error_class=type(e).__name__,
                context={"phase": "network_exception"},
            )
            return TranslationFailure(
                kind=TranslationErrorKind.NETWORK_ERROR, message=f"Network error: {e}"
            )

        TranslationLogger.log_provider_response(
            post_id,
            target_language,
            provider_status=response.status_code,
            body=response.text,
            phase="post_chat_completions",
            provider=provider,
        )

        if not response.is_success:
            failure = map_error_response(response, provider)
            TranslationLogger.log_translation_failed(
                post_id,
                target_language,
                error_message=failure.message,
                error_class=failure.kind.value,
                context={
                    "phase": "provider_error",
                    "provider_status": response.status_code,
                    "provider_body": truncate_body(response.text),
                },
            )
            return failure

        try:
            body = response.json()
        except ValueError:
            # Invalid JSON or a body that is not valid UTF-8
            body = None
        parsed = parse_chat_completion(body)
        if isinstance(parsed, TranslationFailure):
            logger.bind(
                post_id=post_id, error=parsed.message
            ).warning("Provider response did not contain a usable translation")
            TranslationLogger.log_translation_failed(
                post_id,
                target_language,
                error_message=parsed.message,
                error_class=parsed.kind.value,
                context={
                    "phase": "provider_success_invalid_payload",
                    "provider_status": response.status_code,
                    "provider_body": truncate_body(response.text),
                },
            )
        return parsed

    async def _translate_title_fallback(
        self,
        client: ChatCompletionClient,
        title: str,
        target_language: str,
        post_id: Any,
    ) -> str | None:
        """Translate the title alone. Failures are logged and yield None."""
        max_tokens = min(TITLE_MAX_TOKENS, client.config.max_tokens)
        try:
            response = await self._dispatch(
                client,
                build_title_prompt(title, target_language),
                max_tokens=max_tokens,
                temperature=TITLE_TEMPERATURE,
            )
        except httpx.RequestError as e:
            logger.bind(post_id=post_id, error=str(e)).warning("Title fallback translation failed")
            return None

        if not response.is_success:
            logger.bind(
                post_id=post_id, status=response.status_code
            ).warning("Title fallback translation rejected by provider")
            return None

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.bind(post_id=post_id).warning("Title fallback response had an unexpected shape")
            return None

        if not isinstance(content, str) or not content.strip():
            return None
        return content.strip()
