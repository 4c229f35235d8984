"""
Database models package.

This module exports all SQLAlchemy models for the Babel translation pipeline.
"""

from .base import Base, TimestampMixin
from .post import Post, Topic, User
from .post_translation import (
    LANGUAGE_CODE_RE,
    PostTranslation,
    PostTranslationValidationError,
    TranslationStatus,
    is_valid_language_code,
)
from .user_preferred_language import UserPreferredLanguage

__all__ = [
    "Base",
    "TimestampMixin",
    # Host models
    "Topic",
    "Post",
    "User",
    # Translation models
    "PostTranslation",
    "PostTranslationValidationError",
    "TranslationStatus",
    "LANGUAGE_CODE_RE",
    "is_valid_language_code",
    "UserPreferredLanguage",
]
