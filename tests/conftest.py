"""Pytest configuration and shared fixtures."""

import asyncio
import fnmatch
import os
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from onefeed.cache.redis_cache import NewsCache
from onefeed.errors import FetchError, FetchTimeout
from onefeed.ingestion.interfaces import CatalogInterface, FeedSource, FetcherInterface, RawFeedItem
from onefeed.storage.database import NewsStorage
from onefeed.storage.sources import SourceStorage


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` (decode_responses=True).

    Put a method name in ``failing`` to make that call raise a redis
    ConnectionError.
    """

    def __init__(self):
        self.data = {}
        self.failing = set()
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise RedisConnectionError(f"{name}: connection refused")

    async def get(self, key):
        self._check("get")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check("set")
        self.data[key] = value
        return True

    async def incr(self, key):
        self._check("incr")
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    async def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match=None, count=None):
        self._check("scan_iter")
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self):
        self._check("ping")
        return True

    async def aclose(self):
        self.calls.append("aclose")


class FakeFetcher(FetcherInterface):
    """Fetcher serving canned items per source name.

    ``feeds`` maps a source name to a list of RawFeedItem or to an exception
    to raise; ``delays`` maps a source name to seconds before it answers.
    """

    def __init__(self, feeds, delays=None):
        self.feeds = feeds
        self.delays = delays or {}
        self.fetched = []

    async def fetch(self, source: FeedSource, timeout: float):
        self.fetched.append(source.name)
        try:
            return await asyncio.wait_for(self._answer(source), timeout=timeout)
        except asyncio.TimeoutError:
            raise FetchTimeout(source.name, f"no response within {timeout:.1f}s")

    async def _answer(self, source):
        delay = self.delays.get(source.name, 0)
        if delay:
            await asyncio.sleep(delay)
        feed = self.feeds.get(source.name, [])
        if isinstance(feed, Exception):
            raise feed
        return list(feed)


class FakeCatalog(CatalogInterface):
    def __init__(self, sources, error=None):
        self.sources = sources
        self.error = error

    def list_active_sources(self):
        if self.error:
            raise self.error
        return list(self.sources)


def make_items(source_name, count, start_day=1):
    """``count`` raw items with distinct links, one day apart."""
    slug = source_name.lower().replace(" ", "-")
    return [
        RawFeedItem(
            title=f"{source_name} story {i}",
            link=f"https://{slug}.example.com/news/{i}",
            published_at=datetime(2024, 1, start_day + i, 8, 0, 0),
        )
        for i in range(count)
    ]


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def news_storage(temp_db):
    return NewsStorage(temp_db)


@pytest.fixture
def source_storage(news_storage):
    return SourceStorage(news_storage.engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def news_cache(fake_redis):
    return NewsCache(fake_redis, prefix="news")


@pytest.fixture
def sample_sources():
    """Three feed sources as the catalog would return them."""
    return [
        FeedSource(id=1, name="MacThai", url="https://www.macthai.com/feed/", tags="TECHNOLOGY"),
        FeedSource(id=2, name="DroidSans", url="https://droidsans.com/feed/", tags="TECHNOLOGY"),
        FeedSource(id=3, name="Sanook Gadget", url="https://rssfeeds.sanook.com/rss/feeds/sanook/hitech.gadget.index.xml"),
    ]


@pytest.fixture
def sample_feeds():
    """Canned feeds for ``sample_sources``: 2 + 3 + 1 items, all links distinct."""
    return {
        "MacThai": make_items("MacThai", 2),
        "DroidSans": make_items("DroidSans", 3, start_day=5),
        "Sanook Gadget": make_items("Sanook Gadget", 1, start_day=10),
    }


@pytest.fixture
def fetch_error():
    def _make(source_name, reason="HTTP 500"):
        return FetchError(source_name, reason)
    return _make
