"""Interface definitions for news collection."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List


@dataclass(frozen=True)
class FeedSource:
    """A remote feed registered in the catalog."""
    id: int
    name: str
    url: str
    tags: str = ""
    enabled: bool = True


@dataclass
class RawFeedItem:
    """An entry as parsed from a feed, before normalization."""
    title: str = ""
    link: str = ""  # may hold several pipe-delimited candidates
    image: str = ""
    enclosures: List[str] = field(default_factory=list)
    description: str = ""
    content: str = ""
    published_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewsRecord:
    """A normalized news item. ``link`` is its identity across all sources."""
    title: str
    link: str
    source: str
    image_url: str = ""
    published_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "link": self.link,
            "source": self.source,
            "image_url": self.image_url,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch(self, source: FeedSource, timeout: float) -> List[RawFeedItem]:
        """Fetch and parse one source's feed within ``timeout`` seconds."""
        raise NotImplementedError


class CatalogInterface:
    """Interface for the feed source catalog."""

    def list_active_sources(self) -> List[FeedSource]:
        """Return every source that should be collected."""
        raise NotImplementedError
