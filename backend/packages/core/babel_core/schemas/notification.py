"""
Notification schemas.

Payloads published to subscribers while a translation runs.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class NotificationStatus(str, Enum):
    """Translation progress events."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class TranslationStatusEvent(BaseModel):
    """Status event on the topic channel."""

    post_id: int
    target_language: str
    status: NotificationStatus
    timestamp: datetime
    error: str | None = None
    translation_id: str | None = None
    translated_content: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready payload without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class LanguagePreferencePrompt(BaseModel):
    """Asks the client to show the preferred-language prompt."""

    user_id: int
    username: str
