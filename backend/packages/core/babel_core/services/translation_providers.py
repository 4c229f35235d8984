"""
Translation provider client.

Every supported provider exposes an OpenAI-compatible chat-completion
endpoint, so a single httpx-based client covers presets and custom
providers alike. The client only speaks HTTP; interpreting the response
is left to the caller.
"""

from typing import Any

import httpx

from babel_core import get_logger
from babel_core.schemas import (
    ModelProvider,
    ResolvedModelConfig,
    TranslationErrorKind,
    TranslationFailure,
)

from .response_parser import extract_error_message

logger = get_logger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

# Sampling temperatures: fixed, non-creative translation
BODY_TEMPERATURE = 0.3
TITLE_TEMPERATURE = 0.2
TITLE_MAX_TOKENS = 128


def provider_display_name(provider: str) -> str:
    """Human-readable name for a provider identifier."""
    try:
        return ModelProvider(provider).display_name
    except ValueError:
        return provider


class ChatCompletionClient:
    """Client for an OpenAI-compatible chat-completion endpoint."""

    def __init__(self, http_client: httpx.AsyncClient, config: ResolvedModelConfig) -> None:
        self.http_client = http_client
        self.config = config

    @property
    def url(self) -> str:
        return self.config.base_url.rstrip("/") + CHAT_COMPLETIONS_PATH

    def build_request_body(
        self, prompt: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        return {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    async def complete(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float = BODY_TEMPERATURE,
    ) -> httpx.Response:
        """
        Send one chat-completion request.

        Args:
            prompt: Single user message.
            max_tokens: Output-token budget. Defaults to the resolved one.
            temperature: Sampling temperature.

        Returns:
            The provider response, whatever its status.

        Raises:
            httpx.RequestError: The request never got a response (connection
                failure, timeout).
        """
        body = self.build_request_body(
            prompt, max_tokens or self.config.max_tokens, temperature
        )
        return await self.http_client.post(
            self.url,
            json=body,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
        )


def map_error_response(response: httpx.Response, provider: str) -> TranslationFailure:
    """
    Map a non-2xx provider response to a typed failure.

    401 is an invalid key, 429 a provider-side rate limit, 400 a bad
    request, 5xx an unavailable provider and anything else a generic
    provider error. The provider's own message is kept for diagnostics.
    """
    status = response.status_code
    message = extract_error_message(response.text)

    if status == 401:
        kind, text = TranslationErrorKind.INVALID_API_KEY, "Invalid API key"
    elif status == 429:
        kind, text = (
            TranslationErrorKind.RATE_LIMITED,
            "Rate limit exceeded. Please try again later.",
        )
    elif status == 400:
        kind, text = TranslationErrorKind.BAD_REQUEST, f"Bad request: {message}"
    elif 500 <= status <= 599:
        kind, text = (
            TranslationErrorKind.PROVIDER_UNAVAILABLE,
            f"{provider_display_name(provider)} service temporarily unavailable",
        )
    else:
        kind, text = TranslationErrorKind.PROVIDER_ERROR, f"API error: {message}"

    logger.bind(
        provider=provider, status=status, error=message
    ).warning("Provider returned an error response")
    return TranslationFailure(kind=kind, message=text, provider_status=status)
