"""
Worker entry point.

arq settings for the translation worker. Run with::

    arq babel_worker.main.WorkerSettings
"""

from typing import Any

import httpx
from arq.connections import RedisSettings

from babel_core import get_logger, init_logging
from babel_core.config import get_settings
from babel_database.session import close_database, init_database

from .tasks.translation import batch_translate_posts_task, translate_post_task

logger = get_logger(__name__)

settings = get_settings()


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize logging, the database and the shared HTTP client."""
    init_logging(
        level=settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
        translation_log_file=settings.translation_log_file or None,
    )
    init_database(settings.database_url)
    # Finite timeout: a hung provider must not pin a worker slot
    ctx["http_client"] = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    ctx["settings"] = settings
    logger.bind(
        preset_model=settings.preset_model, rate_limit=settings.rate_limit_per_minute
    ).info("Translation worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Close the HTTP client and dispose the database engine."""
    http_client: httpx.AsyncClient | None = ctx.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    await close_database()
    logger.info("Translation worker stopped")


class WorkerSettings:
    """arq worker configuration."""

    functions = [translate_post_task, batch_translate_posts_task]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    max_jobs = 10
    # Provider timeout plus headroom for the database work around it
    job_timeout = int(settings.request_timeout_seconds * 2) + 30
