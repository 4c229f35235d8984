"""
Structured translation event log.

Writes one JSON object per line to the translation log sink configured by
``init_logging``. Each event carries a timestamp, the event name, the
post and language and a status, plus event-specific fields.
"""

import json
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from .logging_config import TRANSLATION_EVENT_KEY, get_logger

_app_logger = get_logger(__name__)

# Provider bodies are truncated to keep log lines bounded
MAX_BODY_LOG_LENGTH = 4000

_event_logger = logger.bind(**{TRANSLATION_EVENT_KEY: True, "name": __name__})


def truncate_body(body: str | None) -> str:
    """Truncate a provider body for logging."""
    return (body or "")[:MAX_BODY_LOG_LENGTH]


class TranslationLogger:
    """Emitter for translation lifecycle events."""

    @staticmethod
    def _write(event: str, post_id: Any, target_language: str | None, status: str,
               **fields: Any) -> None:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "event": event,
            "post_id": post_id,
            "target_language": target_language,
            "status": status,
            **fields,
        }
        try:
            # Pre-serialized, no formatting arguments: loguru must not touch braces
            _event_logger.info(json.dumps(entry, ensure_ascii=False, default=str))
        except Exception:
            _app_logger.exception("Failed to write translation log entry")

    @classmethod
    def log_translation_started(
        cls,
        post_id: Any,
        target_language: str,
        content_length: int,
        force_update: bool = False,
    ) -> None:
        cls._write(
            "translation_started",
            post_id,
            target_language,
            "started",
            content_length=content_length,
            force_update=force_update,
        )

    @classmethod
    def log_translation_completed(
        cls,
        post_id: Any,
        target_language: str,
        translation_id: str | None,
        processing_time_ms: float,
        ai_model: str | None = None,
        tokens_used: int | None = None,
        translated_length: int = 0,
        force_update: bool = False,
    ) -> None:
        cls._write(
            "translation_completed",
            post_id,
            target_language,
            "success",
            translation_id=translation_id,
            processing_time_ms=processing_time_ms,
            ai_model=ai_model or "unknown",
            ai_usage={"tokens_used": tokens_used} if tokens_used is not None else {},
            translated_length=translated_length,
            force_update=force_update,
        )

    @classmethod
    def log_translation_failed(
        cls,
        post_id: Any,
        target_language: str | None,
        error_message: str,
        error_class: str,
        processing_time_ms: float = 0,
        context: dict[str, Any] | None = None,
    ) -> None:
        fields: dict[str, Any] = {
            "error_message": error_message,
            "error_class": error_class,
            "processing_time_ms": processing_time_ms,
        }
        if context:
            fields["context"] = context
        cls._write("translation_failed", post_id, target_language, "error", **fields)

    @classmethod
    def log_translation_skipped(cls, post_id: Any, target_language: str | None,
                                reason: str) -> None:
        cls._write("translation_skipped", post_id, target_language, "skipped", reason=reason)

    @classmethod
    def log_provider_response(
        cls,
        post_id: Any,
        target_language: str | None,
        provider_status: int,
        body: str | None,
        phase: str,
        provider: str | None,
    ) -> None:
        cls._write(
            "provider_response",
            post_id,
            target_language,
            "ok" if 200 <= provider_status < 300 else "error",
            provider_status=provider_status,
            body=truncate_body(body),
            phase=phase,
            provider=provider,
        )
