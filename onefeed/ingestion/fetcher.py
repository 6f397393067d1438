"""RSS feed fetcher with async support, per-source deadlines, and retries."""

import asyncio
import time
from datetime import datetime
from typing import List, Optional

import aiohttp
import feedparser
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .interfaces import FeedSource, RawFeedItem, FetcherInterface
from ..config.settings import settings
from ..errors import FetchError, FetchTimeout

logger = structlog.get_logger()


class RSSFetcher(FetcherInterface):
    """Async RSS/Atom fetcher. One outbound request per ``fetch`` call."""

    def __init__(self, user_agent: str = None):
        self.session: Optional[aiohttp.ClientSession] = None
        self.user_agent = user_agent or settings.user_agent

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()

    async def fetch(self, source: FeedSource, timeout: float) -> List[RawFeedItem]:
        """Fetch and parse a single feed.

        Raises FetchTimeout when the feed does not answer within ``timeout``
        seconds (retries included) and FetchError on any other network or
        parse failure.
        """
        start_time = time.time()
        try:
            content = await asyncio.wait_for(self._download(source.url), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("feed_fetch_timeout", source=source.name, timeout_s=timeout)
            raise FetchTimeout(source.name, f"no response within {timeout:.1f}s")
        except aiohttp.ClientError as e:
            logger.error("feed_fetch_failed", source=source.name, error=str(e))
            raise FetchError(source.name, str(e)) from e

        items = self.parse(content, source.name)

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info("feed_fetched", source=source.name, items=len(items), time_ms=elapsed_ms)
        return items

    @retry(
        stop=stop_after_attempt(settings.fetch_max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(aiohttp.ClientConnectionError),
        reraise=True,
    )
    async def _download(self, url: str) -> bytes:
        async with self.session.get(url) as response:
            response.raise_for_status()
            return await response.read()

    def parse(self, content: bytes, source_name: str) -> List[RawFeedItem]:
        """Parse feed bytes into raw items, preserving feed order."""
        feed = feedparser.parse(content)
        entries = feed.get("entries") or []

        # feedparser flags recoverable oddities too; only reject feeds it could not read
        if feed.get("bozo") and not entries:
            reason = feed.get("bozo_exception") or "unparsable feed"
            logger.error("feed_parse_failed", source=source_name, error=str(reason))
            raise FetchError(source_name, f"unparsable feed ({reason})")

        return [self._parse_entry(entry) for entry in entries]

    def _parse_entry(self, entry) -> RawFeedItem:
        """Parse a feedparser entry into a RawFeedItem."""
        image = ""
        entry_image = entry.get("image")
        if isinstance(entry_image, dict):
            image = entry_image.get("href") or entry_image.get("url") or ""
        if not image and entry.get("media_thumbnail"):
            image = entry["media_thumbnail"][0].get("url", "")

        enclosures = [
            enc.get("href") for enc in entry.get("enclosures", [])
            if enc.get("href")
        ]

        content = ""
        if entry.get("content"):
            content = entry["content"][0].get("value", "")

        # Parse date
        published_at = None
        for attr in ["published_parsed", "updated_parsed"]:
            parsed = entry.get(attr)
            if parsed:
                try:
                    published_at = datetime(*parsed[:6])
                    break
                except (TypeError, ValueError):
                    pass

        return RawFeedItem(
            title=entry.get("title", ""),
            link=entry.get("link", ""),
            image=image,
            enclosures=enclosures,
            description=entry.get("summary", "") or entry.get("description", ""),
            content=content,
            published_at=published_at,
        )
