"""Purge cached news listings after new news is stored."""

import structlog

from ..errors import CacheBackendError, CacheInvalidationError

logger = structlog.get_logger()


class CacheInvalidator:
    """Retire every listing cached under the news namespace.

    The generation is bumped before the purge, so a reader that queried
    storage before the new records landed writes its page under a
    generation nobody reads any more.
    """

    def __init__(self, cache, prefix: str = None):
        self.cache = cache
        self.prefix = prefix or cache.listing_prefix

    async def invalidate(self) -> int:
        """Bump the generation and delete all listing keys. Returns the number removed.

        Raises CacheInvalidationError if the backend fails; stored news is
        unaffected but listings may be stale until this is retried.
        """
        try:
            generation = await self.cache.bump_generation()
            removed = await self.cache.delete_by_prefix(self.prefix)
        except CacheBackendError as e:
            logger.error("cache_invalidation_failed", prefix=self.prefix, error=str(e))
            raise CacheInvalidationError(str(e)) from e

        logger.info("cache_invalidated", prefix=self.prefix, generation=generation, removed=removed)
        return removed
