"""
Translation schemas.

Result, error and metadata models shared by the translation service,
the response parser and the worker.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# The provider response carries no confidence score; this is a fixed
# placeholder, not a measurement.
DEFAULT_CONFIDENCE = 0.95
DEFAULT_SOURCE_LANGUAGE = "auto"


class TranslationErrorKind(str, Enum):
    """Kinds of modeled translation failures."""

    INVALID_INPUT = "invalid_input"
    CONFIG_ERROR = "config_error"
    RATE_LIMITED = "rate_limited"
    CONTENT_TOO_LONG = "content_too_long"
    INVALID_API_KEY = "invalid_api_key"
    BAD_REQUEST = "bad_request"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"

    @property
    def is_provider_error(self) -> bool:
        """Whether the failure came from talking to the provider."""
        return self in _PROVIDER_ERROR_KINDS

    @property
    def is_retryable(self) -> bool:
        """Whether retrying later might plausibly succeed."""
        return self in (
            TranslationErrorKind.RATE_LIMITED,
            TranslationErrorKind.PROVIDER_UNAVAILABLE,
            TranslationErrorKind.NETWORK_ERROR,
        )


_PROVIDER_ERROR_KINDS = frozenset({
    TranslationErrorKind.INVALID_API_KEY,
    TranslationErrorKind.BAD_REQUEST,
    TranslationErrorKind.PROVIDER_UNAVAILABLE,
    TranslationErrorKind.PROVIDER_ERROR,
    TranslationErrorKind.NETWORK_ERROR,
})


class TranslationFailure(BaseModel):
    """Error variant returned by every translation layer."""

    model_config = ConfigDict(frozen=True)

    kind: TranslationErrorKind
    message: str
    provider_status: int | None = None

    def __str__(self) -> str:
        return self.message


class ProviderInfo(BaseModel):
    """Which provider/model produced a translation."""

    model: str | None = None
    tokens_used: int | None = None
    provider: str | None = None


class ParsedTranslation(BaseModel):
    """Translation extracted from a chat-completion response."""

    translated_text: str
    translated_title: str | None = None
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    confidence: float = DEFAULT_CONFIDENCE
    model: str | None = None
    tokens_used: int | None = None


class TranslationResult(BaseModel):
    """Successful result of TranslationService.translate."""

    translated_content: str
    translated_title: str | None = None
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    confidence: float = DEFAULT_CONFIDENCE
    provider_info: ProviderInfo = Field(default_factory=ProviderInfo)


class TranslationMetadata(BaseModel):
    """
    Known metadata fields of a post translation.

    Unknown keys are kept (``extra="allow"``) so that historical diagnostic
    fields written by older runs survive a merge.
    """

    model_config = ConfigDict(extra="allow")

    confidence: float | None = None
    provider_info: ProviderInfo | None = None
    translating_started_at: datetime | None = None
    translated_at: datetime | None = None
    failed_at: datetime | None = None
    updated_at: datetime | None = None
    processing_time_ms: float | None = None
    error: str | None = None
    error_kind: str | None = None
    error_class: str | None = None

    @classmethod
    def merge(cls, existing: dict[str, Any] | None, **updates: Any) -> dict[str, Any]:
        """
        Merge updates into stored metadata.

        Args:
            existing: Metadata currently stored on the record (may be None).
            **updates: Field values to set. Existing keys not mentioned are
                preserved.

        Returns:
            A new JSON-ready dict; the input is not mutated.
        """
        merged = dict(existing or {})
        merged.update(updates)
        validated = cls.model_validate(merged)
        return validated.model_dump(mode="json", exclude_none=True)


class PostTranslationResponse(BaseModel):
    """Serialized post translation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: int
    language: str
    translated_content: str | None
    translated_title: str | None
    source_language: str | None
    translation_provider: str | None
    status: str
    confidence: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Any) -> "PostTranslationResponse":
        """Build a response from a PostTranslation record."""
        metadata = dict(record.translation_metadata or {})
        return cls(
            id=record.id,
            post_id=record.post_id,
            language=record.language,
            translated_content=record.translated_content,
            translated_title=record.translated_title,
            source_language=record.source_language,
            translation_provider=record.translation_provider,
            status=getattr(record.status, "value", record.status),
            confidence=record.confidence,
            metadata=metadata,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
