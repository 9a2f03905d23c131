"""
Wine Stock — Retry for version-guarded wine writes

Each stock mutation reads a wine row, checks it, then updates it only where
version_id still holds the value it read. If another request saved the wine in
between, the update matches no row and StaleDataError is raised. The
operation is then replayed from its read, so its checks see the new quantities.
"""
import asyncio
import random
import functools
import logging

from winestock.core.config import get_settings
from winestock.core.errors import ConflictError

settings = get_settings()
logger = logging.getLogger(__name__)


class StaleDataError(ConflictError):
    """The wine changed after it was read; nothing from this attempt was kept."""


def _backoff_delay(attempt: int) -> float:
    """Seconds to wait before replaying attempt + 1: doubling, capped, plus jitter."""
    base = settings.OPT_LOCK_BASE_DELAY_MS / 1000.0
    cap = settings.OPT_LOCK_MAX_DELAY_MS / 1000.0
    jitter = random.uniform(0, settings.OPT_LOCK_JITTER_MS / 1000.0)
    return min(base * (2 ** attempt), cap) + jitter


def with_optimistic_retry(max_retries: int | None = None):
    """
    Replay a stock mutation when it loses a version race.

    The decorated coroutine must start by re-reading the wine (stock_ops does
    this through get_wine) and must leave the session rolled back when it
    raises StaleDataError. Business-rule errors pass straight through; only
    version conflicts are retried, up to OPT_LOCK_MAX_RETRIES attempts.
    """
    attempts = max_retries or settings.OPT_LOCK_MAX_RETRIES

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except StaleDataError:
                    if attempt == attempts:
                        logger.error("%s: wine still contended after %d attempts", func.__name__, attempts)
                        raise
                    delay = _backoff_delay(attempt)
                    logger.warning(
                        "%s: wine version moved (attempt %d/%d), replaying in %.3fs",
                        func.__name__, attempt, attempts, delay,
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
