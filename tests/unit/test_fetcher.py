"""Unit tests for the RSS fetcher."""

import asyncio
from datetime import datetime
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from onefeed.config.settings import settings
from onefeed.errors import FetchError, FetchTimeout
from onefeed.ingestion.fetcher import RSSFetcher
from onefeed.ingestion.interfaces import FeedSource

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>MacThai</title>
    <link>https://www.macthai.com</link>
    <description>Apple news</description>
    <item>
      <title>First story</title>
      <link>https://www.macthai.com/2024/01/02/first/</link>
      <description><![CDATA[<p>Body</p><img src="https://img.macthai.com/first.jpg">]]></description>
      <pubDate>Tue, 02 Jan 2024 08:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second story</title>
      <link>https://www.macthai.com/2024/01/01/second/</link>
      <enclosure url="https://img.macthai.com/second.jpg" type="image/jpeg" length="1000"/>
    </item>
  </channel>
</rss>
"""

SOURCE = FeedSource(id=1, name="MacThai", url="https://www.macthai.com/feed/")


class TestParse:
    """Tests for RSSFetcher.parse."""

    def test_parses_items_in_feed_order(self):
        items = RSSFetcher().parse(RSS_FEED, "MacThai")

        assert [i.title for i in items] == ["First story", "Second story"]
        assert items[0].link == "https://www.macthai.com/2024/01/02/first/"
        assert items[0].published_at == datetime(2024, 1, 2, 8, 0, 0)
        assert "first.jpg" in items[0].description

    def test_missing_date_is_none(self):
        items = RSSFetcher().parse(RSS_FEED, "MacThai")
        assert items[1].published_at is None

    def test_enclosure_href_collected(self):
        items = RSSFetcher().parse(RSS_FEED, "MacThai")
        assert items[1].enclosures == ["https://img.macthai.com/second.jpg"]

    def test_unparsable_feed_raises(self):
        with pytest.raises(FetchError) as exc_info:
            RSSFetcher().parse(b"this is not a feed <<<", "Broken")
        assert exc_info.value.source == "Broken"

    def test_empty_channel_is_not_an_error(self):
        feed = b"""<?xml version="1.0"?><rss version="2.0"><channel><title>Empty</title></channel></rss>"""
        assert RSSFetcher().parse(feed, "Empty") == []


@pytest.mark.asyncio
class TestFetch:
    """Tests for RSSFetcher.fetch with the download patched out."""

    async def test_fetch_returns_parsed_items(self):
        async def download(self, url):
            return RSS_FEED

        fetcher = RSSFetcher()
        with patch.object(RSSFetcher, "_download", download):
            items = await fetcher.fetch(SOURCE, timeout=5)
        assert len(items) == 2

    async def test_slow_download_raises_fetch_timeout(self):
        async def slow(self, url):
            await asyncio.sleep(5)
            return RSS_FEED

        fetcher = RSSFetcher()
        with patch.object(RSSFetcher, "_download", slow):
            with pytest.raises(FetchTimeout):
                await fetcher.fetch(SOURCE, timeout=0.05)

    async def test_http_error_raises_fetch_error(self):
        async def failing(self, url):
            raise aiohttp.ClientError("HTTP 503")

        fetcher = RSSFetcher()
        with patch.object(RSSFetcher, "_download", failing):
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch(SOURCE, timeout=5)
        assert not isinstance(exc_info.value, FetchTimeout)
        assert "HTTP 503" in exc_info.value.reason

    async def test_session_lifecycle(self):
        async with RSSFetcher(user_agent="test-agent") as fetcher:
            assert fetcher.session is not None
            assert not fetcher.session.closed
        assert fetcher.session.closed


class FakeResponse:
    """Async-context-manager response as returned by ``ClientSession.get``."""

    def __init__(self, body=RSS_FEED, status=200):
        self.body = body
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                MagicMock(), (), status=self.status, message="Service Unavailable"
            )

    async def read(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class ScriptedSession:
    """Session whose ``get`` plays back outcomes in order; the last one repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def get(self, url):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
class TestFetchRetries:
    """Retry behaviour of the real download path."""

    async def test_connection_error_then_success(self):
        fetcher = RSSFetcher()
        fetcher.session = ScriptedSession(aiohttp.ClientConnectionError("connection reset"), FakeResponse())

        items = await fetcher.fetch(SOURCE, timeout=10)

        assert len(items) == 2
        assert fetcher.session.calls == 2

    async def test_http_status_error_not_retried(self):
        fetcher = RSSFetcher()
        fetcher.session = ScriptedSession(FakeResponse(status=503))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(SOURCE, timeout=10)

        assert not isinstance(exc_info.value, FetchTimeout)
        assert fetcher.session.calls == 1

    async def test_retries_outlasting_deadline_raise_timeout(self):
        fetcher = RSSFetcher()
        fetcher.session = ScriptedSession(aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(FetchTimeout):
            await fetcher.fetch(SOURCE, timeout=0.3)

        assert fetcher.session.calls == 1

    async def test_retries_exhausted_raise_fetch_error(self):
        fetcher = RSSFetcher()
        fetcher.session = ScriptedSession(aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(SOURCE, timeout=30)

        assert not isinstance(exc_info.value, FetchTimeout)
        assert fetcher.session.calls == settings.fetch_max_retries
