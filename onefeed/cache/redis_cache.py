"""Redis-backed cache for news listings.

Values are stored as JSON strings. A plain miss is reported as ``None``;
anything else that goes wrong talking to Redis is raised as
CacheBackendError so callers can decide whether it is fatal.
"""

import json
from typing import Any, List, Optional, Sequence

from redis.exceptions import RedisError
import structlog

from .keys import generation_key, listing_key, listing_prefix, prefix_pattern
from ..errors import CacheBackendError

logger = structlog.get_logger()

SCAN_COUNT = 100
DELETE_CHUNK = 100


class NewsCache:
    """Thin JSON layer over an async Redis client."""

    def __init__(self, client, prefix: str = "news", ttl_seconds: Optional[int] = None):
        self.client = client
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    @property
    def listing_prefix(self) -> str:
        return listing_prefix(self.prefix)

    def listing_key(self, sources: Sequence[str], page: int, limit: int, generation: int = 0) -> str:
        return listing_key(self.prefix, sources, page, limit, generation)

    async def get_generation(self) -> int:
        """Current listing generation; 0 before the first purge."""
        key = generation_key(self.prefix)
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise CacheBackendError(f"get {key} failed: {e}") from e
        try:
            return int(raw) if raw is not None else 0
        except (TypeError, ValueError) as e:
            raise CacheBackendError(f"corrupt generation {key}: {e}") from e

    async def bump_generation(self) -> int:
        key = generation_key(self.prefix)
        try:
            return int(await self.client.incr(key))
        except RedisError as e:
            raise CacheBackendError(f"incr {key} failed: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when the key does not exist."""
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise CacheBackendError(f"get {key} failed: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheBackendError(f"corrupt cache entry {key}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        try:
            await self.client.set(key, payload, ex=self.ttl_seconds)
        except RedisError as e:
            raise CacheBackendError(f"set {key} failed: {e}") from e

    async def delete_by_prefix(self, prefix: str = None) -> int:
        """Delete every key under ``prefix`` (defaults to the listing namespace).

        Returns the number of keys removed.
        """
        pattern = prefix_pattern(prefix or self.listing_prefix)
        removed = 0
        try:
            batch: List[str] = []
            async for key in self.client.scan_iter(match=pattern, count=SCAN_COUNT):
                batch.append(key)
                if len(batch) >= DELETE_CHUNK:
                    removed += await self.client.delete(*batch)
                    batch = []
            if batch:
                removed += await self.client.delete(*batch)
        except RedisError as e:
            raise CacheBackendError(f"delete {pattern} failed after {removed} keys: {e}") from e

        logger.debug("cache_keys_deleted", pattern=pattern, removed=removed)
        return removed

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            raise CacheBackendError(f"ping failed: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
