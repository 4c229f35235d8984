"""
User preferred language model definition.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import Base, TimestampMixin
from .post_translation import PostTranslationValidationError, is_valid_language_code


class UserPreferredLanguage(Base, TimestampMixin):
    """
    A user's preferred reading language.

    Attributes:
        id: Primary key.
        user_id: Owning user (unique, one preference per user).
        language: Preferred language code, unset until the user picks one.
        enabled: Whether translated content should be shown by default.
    """

    __tablename__ = "user_preferred_languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    language: Mapped[str | None] = mapped_column(String(10), index=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="preferred_language")

    @validates("language")
    def _validate_language(self, _key: str, language: str | None) -> str | None:
        if language is not None and not is_valid_language_code(language):
            raise PostTranslationValidationError(
                f"Language must be a valid language code, got {language!r}"
            )
        return language
