"""Factory functions to create the process-wide storage and cache clients.

The core components take these clients through their constructors; only the
API, the worker and the scripts go through this module.
"""

import os
from functools import lru_cache

import redis.asyncio as redis
import structlog

from ..config.settings import settings

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    # Check for DATABASE_URL first (standard for cloud platforms)
    url = os.environ.get('DATABASE_URL')
    if url:
        return url
    return settings.database_url


def get_redis_url() -> str:
    return os.environ.get('REDIS_URL') or settings.redis_url


def is_postgres() -> bool:
    """Check if we're using PostgreSQL."""
    url = get_database_url()
    return url.startswith('postgresql://') or url.startswith('postgres://')


@lru_cache(maxsize=1)
def get_news_storage():
    """Get the news storage instance (PostgreSQL or SQLite, by URL)."""
    from .database import NewsStorage

    url = get_database_url()
    if url.startswith('postgres://'):
        # SQLAlchemy only accepts the postgresql:// scheme
        url = 'postgresql://' + url[len('postgres://'):]
    logger.info("using_postgres_storage" if is_postgres() else "using_sqlite_storage")
    return NewsStorage(url)


@lru_cache(maxsize=1)
def get_source_storage():
    """Get the source catalog, sharing the news storage engine."""
    from .sources import SourceStorage
    return SourceStorage(get_news_storage().engine)


@lru_cache(maxsize=1)
def get_news_cache():
    """Get the Redis-backed listing cache."""
    from ..cache.redis_cache import NewsCache

    client = redis.Redis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_connect_timeout,
    )
    logger.info("using_redis_cache", prefix=settings.cache_prefix)
    return NewsCache(client, prefix=settings.cache_prefix, ttl_seconds=settings.cache_ttl_seconds)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_news_storage.cache_clear()
    get_source_storage.cache_clear()
    get_news_cache.cache_clear()
