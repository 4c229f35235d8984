"""
Pydantic schemas for the translation pipeline.
"""

from .model_config import (
    CHARS_PER_TOKEN,
    ModelPreset,
    ModelProvider,
    ModelTier,
    ResolvedModelConfig,
)
from .notification import LanguagePreferencePrompt, NotificationStatus, TranslationStatusEvent
from .preference import UserPreferenceResponse
from .translation import (
    DEFAULT_CONFIDENCE,
    DEFAULT_SOURCE_LANGUAGE,
    ParsedTranslation,
    PostTranslationResponse,
    ProviderInfo,
    TranslationErrorKind,
    TranslationFailure,
    TranslationMetadata,
    TranslationResult,
)

__all__ = [
    # Model config
    "CHARS_PER_TOKEN",
    "ModelPreset",
    "ModelProvider",
    "ModelTier",
    "ResolvedModelConfig",
    # Notifications
    "LanguagePreferencePrompt",
    "NotificationStatus",
    "TranslationStatusEvent",
    # Preferences
    "UserPreferenceResponse",
    # Translation
    "DEFAULT_CONFIDENCE",
    "DEFAULT_SOURCE_LANGUAGE",
    "ParsedTranslation",
    "PostTranslationResponse",
    "ProviderInfo",
    "TranslationErrorKind",
    "TranslationFailure",
    "TranslationMetadata",
    "TranslationResult",
]
