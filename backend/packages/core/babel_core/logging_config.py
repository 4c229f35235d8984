"""
Logging configuration.

Configures loguru sinks for the application and routes standard-library
logging (SQLAlchemy, httpx, arq) through loguru so every record ends up
in the same place.
"""

import inspect
import logging
import sys
from typing import Any

from loguru import logger

# Extra key marking records that belong to the translation event log
TRANSLATION_EVENT_KEY = "translation_event"

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

# Extra keys that are not rendered as log context
_RESERVED_EXTRA = frozenset({"name", "context", TRANSLATION_EVENT_KEY})


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def format_record(record: dict[str, Any]) -> str:
    """
    Build the loguru format for one record.

    Context bound with ``logger.bind(...)`` is rendered after the message
    as ``key=value`` pairs.
    """
    context = {k: v for k, v in record["extra"].items() if k not in _RESERVED_EXTRA}
    record["extra"]["context"] = " ".join(f"{k}={v!r}" for k, v in context.items())
    fmt = _CONSOLE_FORMAT
    if context:
        fmt += " | <dim>{extra[context]}</dim>"
    return fmt + "\n{exception}"


def _is_application_record(record: dict[str, Any]) -> bool:
    return TRANSLATION_EVENT_KEY not in record["extra"]


def _is_translation_event(record: dict[str, Any]) -> bool:
    return TRANSLATION_EVENT_KEY in record["extra"]


def init_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
    translation_log_file: str | None = None,
) -> None:
    """
    Initialize application logging.

    Args:
        level: Minimum log level for application sinks.
        log_file: Optional path of a rotating application log file.
        json_logs: Serialize application records as JSON.
        translation_log_file: Optional path of the JSON-lines translation
            event log. Each line is one event written by TranslationLogger.
    """
    logger.remove()
    logger.configure(extra={"name": "babel"})

    logger.add(
        sys.stderr,
        level=level,
        format=format_record,
        serialize=json_logs,
        filter=_is_application_record,
    )

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=format_record,
            rotation="10 MB",
            retention="7 days",
            serialize=json_logs,
            filter=_is_application_record,
            enqueue=True,
        )

    if translation_log_file:
        logger.add(
            translation_log_file,
            level="INFO",
            format="{message}",
            rotation="50 MB",
            filter=_is_translation_event,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str):  # type: ignore[no-untyped-def]
    """
    Get a logger bound to a module name.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A loguru logger with ``name`` bound into its extra context.
    """
    return logger.bind(name=name)
