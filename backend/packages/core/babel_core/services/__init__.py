"""
Service layer.

Business logic services for the translation pipeline.
"""

from .notification import TranslationNotifier
from .post_translation_service import PostTranslationService
from .rate_limiter import CounterStore, RateLimiter, RedisCounterStore
from .translation_service import TranslationService
from .user_preference_service import UserPreferenceService

__all__ = [
    "TranslationService",
    "PostTranslationService",
    "UserPreferenceService",
    "TranslationNotifier",
    # Rate limiting
    "CounterStore",
    "RateLimiter",
    "RedisCounterStore",
]
