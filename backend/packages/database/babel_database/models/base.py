"""
SQLAlchemy base model and mixins.

This module defines the declarative base and common mixins for all models.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (e.g. SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def generate_uuid() -> str:
    """Generate a new UUID string primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current timezone-aware UTC time."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Custom declarative base for all models."""

    pass


class TimestampMixin:
    """
    Mixin that adds timestamp fields to a model.

    Attributes:
        created_at: When the record was created.
        updated_at: When the record was last updated.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
