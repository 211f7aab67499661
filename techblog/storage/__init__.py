"""Blog storage: Postgres (preferred) or in-memory fallback."""

from __future__ import annotations

import logging

from techblog.config import get_settings
from techblog.storage.base import BlogStorage
from techblog.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

_storage: BlogStorage | None = None


def get_storage() -> BlogStorage:
    """Return singleton blog storage (Postgres if configured, else in-memory)."""
    global _storage
    if _storage is not None:
        return _storage
    settings = get_settings()
    if settings.blog_database_url:
        try:
            from techblog.storage.postgres import PostgresStorage

            _storage = PostgresStorage(settings.blog_database_url)
            logger.info("Using Postgres blog storage")
        except Exception as e:
            logger.warning("Postgres blog storage failed (%s), falling back to memory", e)
            _storage = MemoryStorage()
    else:
        _storage = MemoryStorage()
        logger.info("Using in-memory blog storage (BLOG_DATABASE_URL not set)")
    return _storage


__all__ = ["BlogStorage", "MemoryStorage", "get_storage"]
