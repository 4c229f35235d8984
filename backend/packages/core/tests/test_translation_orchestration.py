"""Tests for the translation orchestration service."""

import json

import httpx
import pytest

from babel_core.schemas import TranslationErrorKind, TranslationFailure, TranslationResult
from babel_core.services.rate_limiter import RateLimiter, RedisCounterStore
from babel_core.services.translation_service import TranslationService

WINDOW_KEY = "ai_translator_rate_limit:0"


def _service(settings, http_client, mock_redis, **overrides) -> TranslationService:
    settings = settings.model_copy(update=overrides)
    limiter = RateLimiter(
        RedisCounterStore(mock_redis), settings.rate_limit_per_minute, clock=lambda: 0.0
    )
    return TranslationService(settings, http_client, limiter)


def _json_content(**payload) -> str:
    return json.dumps(payload, ensure_ascii=False)


class TestTranslateSuccess:
    """Test successful translations."""

    @pytest.mark.asyncio
    async def test_translates_content(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        """Test the request shape and the returned result."""
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationResult)
        assert result.translated_content == "<p>Hello</p>"
        assert result.translated_title is None
        assert result.source_language == "auto"
        assert result.confidence == 0.95
        assert result.provider_info.model == "gpt-4o-mini"
        assert result.provider_info.tokens_used == 42
        assert result.provider_info.provider == "openai"

        request = provider.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["Content-Type"] == "application/json"
        body = provider.request_bodies()[0]
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.3
        assert body["max_tokens"] == 16_000
        assert body["messages"][0]["role"] == "user"
        assert "<p>你好</p>" in body["messages"][0]["content"]
        assert '"translated_title"' not in body["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_translates_title_in_same_request(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(
            json=chat_completion(
                _json_content(translated_content="<p>Hello</p>", translated_title="Greeting")
            )
        )
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en", title="问候")

        assert isinstance(result, TranslationResult)
        assert result.translated_title == "Greeting"
        assert len(provider.requests) == 1
        prompt = provider.request_bodies()[0]["messages"][0]["content"]
        assert "Topic title: 问候" in prompt
        assert '"translated_title"' in prompt

    @pytest.mark.asyncio
    async def test_strips_code_fences_from_content(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(
            json=chat_completion(
                _json_content(translated_content="```html\n<html><body><p>Hi</p></body></html>\n```")
            )
        )
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>嗨</p>", "en")

        assert isinstance(result, TranslationResult)
        assert result.translated_content == "<p>Hi</p>"


class TestTitleFallback:
    """Test the title-only fallback request."""

    @pytest.mark.asyncio
    async def test_fallback_when_title_missing(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        """A missing title triggers one small request with its own parameters."""
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        provider.reply(json=chat_completion("  Greeting \n"))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en", title="问候")

        assert isinstance(result, TranslationResult)
        assert result.translated_title == "Greeting"
        fallback = provider.request_bodies()[1]
        assert fallback["temperature"] == 0.2
        assert fallback["max_tokens"] == 128
        assert "Return ONLY the translated text" in fallback["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_fallback_failure_does_not_fail_translation(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        provider.reply(503, text="down")
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en", title="问候")

        assert isinstance(result, TranslationResult)
        assert result.translated_content == "<p>Hello</p>"
        assert result.translated_title is None

    @pytest.mark.asyncio
    async def test_fallback_network_error_is_swallowed(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        provider.fail(httpx.ConnectError("refused"))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en", title="问候")

        assert isinstance(result, TranslationResult)
        assert result.translated_title is None

    @pytest.mark.asyncio
    async def test_fallback_body_not_utf8_is_swallowed(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        provider.reply(content=b"\xff\xfe\xfd", headers={"Content-Type": "application/json"})
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en", title="问候")

        assert isinstance(result, TranslationResult)
        assert result.translated_content == "<p>Hello</p>"
        assert result.translated_title is None

    @pytest.mark.asyncio
    async def test_unrequested_title_is_dropped(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        """A title the model volunteers without being asked is not kept."""
        provider.reply(
            json=chat_completion(
                _json_content(translated_content="<p>Hello</p>", translated_title="Greeting")
            )
        )
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationResult)
        assert result.translated_title is None
        assert len(provider.requests) == 1


class TestTranslateGuards:
    """Test failures detected before any request is sent."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("content", "language"), [("", "en"), ("   ", "en"), ("<p>x</p>", "")])
    async def test_blank_input(self, settings, http_client, mock_redis, provider, content, language):
        service = _service(settings, http_client, mock_redis)

        result = await service.translate(content, language)

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.INVALID_INPUT
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_config_error(self, settings, http_client, mock_redis, provider):
        service = _service(settings, http_client, mock_redis, openai_api_key="")

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.CONFIG_ERROR
        assert result.message == "API key not configured for provider openai"
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_rate_limited(self, settings, http_client, mock_redis, provider):
        mock_redis.seed(WINDOW_KEY, 1)
        service = _service(settings, http_client, mock_redis, rate_limit_per_minute=1)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.RATE_LIMITED
        assert result.message == "Rate limit exceeded. Please try again later."
        assert provider.requests == []


class TestContentLengthBudget:
    """Test content-length gating with a custom provider budget."""

    def _custom(self, settings, http_client, mock_redis):
        return _service(
            settings,
            http_client,
            mock_redis,
            preset_model="custom",
            custom_api_key="key",
            custom_base_url="https://llm.example",
            custom_model_name="local-model",
            max_content_length=20,
        )

    @pytest.mark.asyncio
    async def test_exactly_at_budget_succeeds(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(json=chat_completion(_json_content(translated_content="x" * 15)))
        service = self._custom(settings, http_client, mock_redis)

        result = await service.translate("a" * 15, "en", title="b" * 5)

        assert isinstance(result, TranslationResult)
        assert str(provider.requests[0].url) == "https://llm.example/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_one_over_budget_fails_without_request(
        self, settings, http_client, mock_redis, provider
    ):
        service = self._custom(settings, http_client, mock_redis)

        result = await service.translate("a" * 16, "en", title="b" * 5)

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.CONTENT_TOO_LONG
        assert result.message == "Content too long for translation"
        assert len(provider.requests) == 0


class TestProviderErrors:
    """Test provider status mapping and rate-limit accounting."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "body", "kind", "message"),
        [
            (401, '{"error": {"message": "bad key"}}', TranslationErrorKind.INVALID_API_KEY,
             "Invalid API key"),
            (429, '{"error": {"message": "slow down"}}', TranslationErrorKind.RATE_LIMITED,
             "Rate limit exceeded. Please try again later."),
            (400, '{"error": {"message": "context too long"}}', TranslationErrorKind.BAD_REQUEST,
             "Bad request: context too long"),
            (503, "upstream down", TranslationErrorKind.PROVIDER_UNAVAILABLE,
             "OpenAI service temporarily unavailable"),
            (418, '{"message": "teapot"}', TranslationErrorKind.PROVIDER_ERROR,
             "API error: teapot"),
        ],
    )
    async def test_status_mapping(
        self, settings, http_client, mock_redis, provider, status, body, kind, message
    ):
        provider.reply(status, text=body)
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == kind
        assert result.message == message
        assert result.provider_status == status
        # The provider answered, so the request counts
        assert await mock_redis.get(WINDOW_KEY) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_not_counted(self, settings, http_client, mock_redis, provider):
        provider.fail(httpx.ConnectError("connection refused"))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.NETWORK_ERROR
        assert result.message == "Network error: connection refused"
        assert await mock_redis.get(WINDOW_KEY) is None

    @pytest.mark.asyncio
    async def test_request_recorded_after_dispatch(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        """The counter is still untouched while the request is in flight."""
        seen: list[int | None] = []
        provider.before_response = lambda _request: seen.append(mock_redis._store.get(WINDOW_KEY))
        provider.reply(json=chat_completion(_json_content(translated_content="<p>Hello</p>")))
        service = _service(settings, http_client, mock_redis)

        await service.translate("<p>你好</p>", "en")

        assert seen == [None]
        assert await mock_redis.get(WINDOW_KEY) == 1

    @pytest.mark.asyncio
    async def test_unparseable_model_output(
        self, settings, http_client, mock_redis, provider, chat_completion
    ):
        provider.reply(json=chat_completion("I cannot translate this."))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.PARSE_ERROR
        assert result.message == "Failed to parse JSON response"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["```html\n```", "<html><body></body></html>"])
    async def test_content_empty_after_cleanup(
        self, settings, http_client, mock_redis, provider, chat_completion, content
    ):
        provider.reply(json=chat_completion(_json_content(translated_content=content)))
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.PARSE_ERROR
        assert result.message == "No translation in response"

    @pytest.mark.asyncio
    async def test_success_body_not_utf8(self, settings, http_client, mock_redis, provider):
        """A 2xx body that cannot be decoded is a parse error, not an exception."""
        provider.reply(
            content=b'{"choices": [{"message": {"content": "\xff\xfe"}}]}',
            headers={"Content-Type": "application/json"},
        )
        service = _service(settings, http_client, mock_redis)

        result = await service.translate("<p>你好</p>", "en")

        assert isinstance(result, TranslationFailure)
        assert result.kind == TranslationErrorKind.PARSE_ERROR
