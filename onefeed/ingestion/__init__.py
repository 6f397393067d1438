"""News collection - fetching, parsing and normalizing RSS feeds."""

from .interfaces import FeedSource, RawFeedItem, NewsRecord, FetcherInterface, CatalogInterface
from .fetcher import RSSFetcher
from .normalizer import normalize_item, sanitize_link, extract_image

__all__ = [
    "FeedSource", "RawFeedItem", "NewsRecord",
    "FetcherInterface", "CatalogInterface", "RSSFetcher",
    "normalize_item", "sanitize_link", "extract_image",
]
