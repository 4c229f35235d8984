"""
Post translation model definition.

This module defines the PostTranslation model for storing translated
versions of posts, one row per (post, language).
"""

import re
from enum import Enum
from typing import Any

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import Base, JSONType, TimestampMixin, generate_uuid

# Two-letter code with an optional region suffix: "en", "zh-cn", "pt-BR"
LANGUAGE_CODE_RE = re.compile(r"^[a-z]{2}(-[A-Za-z]{2})?$")

DEFAULT_PROVIDER = "openai"


def is_valid_language_code(language: str | None) -> bool:
    """Check a language code against the accepted format."""
    return bool(language) and LANGUAGE_CODE_RE.match(language) is not None


class PostTranslationValidationError(ValueError):
    """Raised when a post translation would violate a model invariant."""


class TranslationStatus(str, Enum):
    """
    Translation status enumeration.

    - translating: a run is in progress, content is cleared
    - completed: translated content is stored
    - failed: the last run failed, error kept in metadata
    """

    TRANSLATING = "translating"
    COMPLETED = "completed"
    FAILED = "failed"


class PostTranslation(Base, TimestampMixin):
    """
    Translated post content.

    Translations are global (not per-user) so every reader of a language
    shares the same row.

    Attributes:
        id: Unique translation identifier (UUID).
        post_id: Parent post reference.
        language: Target language code (e.g. "en", "zh-cn").
        translated_content: Translated post HTML.
        translated_title: Translated topic title (first post only).
        source_language: Detected source language or "auto".
        translation_provider: Provider that produced the translation.
        status: translating/completed/failed.
        translation_metadata: Free-form diagnostics (confidence, provider
            info, timestamps, last error), stored in the ``metadata`` column
            and always merged, never replaced.
    """

    __tablename__ = "post_translations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    translated_content: Mapped[str | None] = mapped_column(Text)
    translated_title: Mapped[str | None] = mapped_column(String(1000))
    source_language: Mapped[str | None] = mapped_column(String(10))
    translation_provider: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_PROVIDER, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=TranslationStatus.TRANSLATING.value, nullable=False, index=True
    )
    translation_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )

    # Relationships
    post = relationship("Post", back_populates="translations")

    # Constraints
    __table_args__ = (
        UniqueConstraint("post_id", "language", name="uq_post_translation_lang"),
    )

    @validates("language")
    def _validate_language(self, _key: str, language: str) -> str:
        if not is_valid_language_code(language):
            raise PostTranslationValidationError(
                f"Language must be a valid language code, got {language!r}"
            )
        return language

    @validates("status")
    def _validate_status(self, _key: str, status: str) -> str:
        value = getattr(status, "value", status)
        if value not in {s.value for s in TranslationStatus}:
            raise PostTranslationValidationError(f"Unknown translation status {status!r}")
        return value

    @property
    def is_translating(self) -> bool:
        return self.status == TranslationStatus.TRANSLATING.value

    @property
    def is_completed(self) -> bool:
        return self.status == TranslationStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.status == TranslationStatus.FAILED.value

    @property
    def confidence(self) -> float:
        return float((self.translation_metadata or {}).get("confidence") or 0.0)

    def __repr__(self) -> str:
        return (
            f"<PostTranslation(id={self.id}, post_id={self.post_id}, "
            f"language='{self.language}', status='{self.status}')>"
        )


@event.listens_for(PostTranslation, "before_insert")
@event.listens_for(PostTranslation, "before_update")
def ensure_completed_has_content(mapper, connection, target: PostTranslation) -> None:  # type: ignore[no-untyped-def]
    """A completed translation must carry non-blank content."""
    if target.is_completed and not (target.translated_content or "").strip():
        raise PostTranslationValidationError(
            "Translated content can't be blank for a completed translation"
        )
