"""Cached news listing (cache-aside over storage)."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from ..config.settings import settings
from ..errors import CacheBackendError, InvalidRequest

logger = structlog.get_logger()


@dataclass(frozen=True)
class NewsResponse:
    """A news item as returned to readers."""
    title: str
    source: str
    published_at: Optional[datetime]
    link: str
    image: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "source": self.source,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "link": self.link,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NewsResponse":
        published = data.get("published_at")
        return cls(
            title=data.get("title", ""),
            source=data.get("source", ""),
            published_at=datetime.fromisoformat(published) if published else None,
            link=data.get("link", ""),
            image=data.get("image", ""),
        )

    @classmethod
    def from_row(cls, row) -> "NewsResponse":
        return cls(
            title=row.title,
            source=row.source,
            published_at=row.published_at,
            link=row.link,
            image=row.image_url,
        )


@dataclass(frozen=True)
class ListingRequest:
    """A listing request after defaults have been applied."""
    sources: List[str]
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def normalize_request(
    sources: Optional[Sequence[str]],
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> ListingRequest:
    """Apply listing defaults. Raises InvalidRequest when no source is named."""
    names = [s for s in (sources or []) if s and s.strip()]
    if not names:
        raise InvalidRequest("invalid request: source is required")

    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        page = 1
    if (
        not isinstance(page_size, int)
        or isinstance(page_size, bool)
        or page_size < 1
        or page_size > settings.max_page_size
    ):
        page_size = settings.default_page_size

    return ListingRequest(sources=names, page=page, page_size=page_size)


class NewsService:
    """Serve paginated news for a set of sources, newest first.

    The cache is consulted first; a miss or any cache failure falls through
    to storage, and the storage result is written back on a best-effort
    basis. Only invalid input or a storage failure fails a request.

    The cache generation is read before storage is queried and is part of
    the key, so a page read before a collection lands can never be served
    after that collection has purged the cache.
    """

    def __init__(self, storage, cache):
        self.storage = storage
        self.cache = cache

    async def get_news(
        self,
        sources: Optional[Sequence[str]],
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> List[NewsResponse]:
        request = normalize_request(sources, page, page_size)
        try:
            generation = await self.cache.get_generation()
        except CacheBackendError as e:
            logger.warning("news_cache_generation_failed", error=str(e))
            return self._query_storage(request)

        key = self.cache.listing_key(request.sources, request.page, request.page_size, generation)

        cached = await self._read_cache(key)
        if cached:
            logger.debug("news_cache_hit", key=key, records=len(cached))
            return cached

        responses = self._query_storage(request)

        # empty pages are not cached; a cached empty list would read as a miss anyway
        if responses:
            await self._write_cache(key, responses)

        logger.debug("news_cache_miss", key=key, records=len(responses))
        return responses

    def _query_storage(self, request: ListingRequest) -> List[NewsResponse]:
        rows = self.storage.list_news(request.sources, offset=request.offset, limit=request.page_size)
        return [NewsResponse.from_row(row) for row in rows]

    async def _read_cache(self, key: str) -> List[NewsResponse]:
        try:
            value = await self.cache.get(key)
        except CacheBackendError as e:
            logger.warning("news_cache_get_failed", key=key, error=str(e))
            return []
        if not isinstance(value, list):
            return []
        try:
            return [NewsResponse.from_dict(item) for item in value]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("news_cache_entry_invalid", key=key, error=str(e))
            return []

    async def _write_cache(self, key: str, responses: List[NewsResponse]) -> None:
        try:
            await self.cache.set(key, [r.to_dict() for r in responses])
        except CacheBackendError as e:
            logger.warning("news_cache_set_failed", key=key, error=str(e))

    def remove_old_news(self, days: int = None) -> int:
        """Retention sweep: drop news older than the retention window."""
        return self.storage.remove_older_than(days)
