"""Map raw feed items to normalized news records."""

from typing import Optional

from bs4 import BeautifulSoup

from .interfaces import RawFeedItem, NewsRecord

LINK_DELIMITER = "|"


def sanitize_link(raw: Optional[str]) -> str:
    """Return the canonical link for a raw feed link.

    Some feeds pack several candidate URLs into one pipe-delimited value; the
    last segment is taken as the real article URL.
    """
    if not raw:
        return ""
    parts = raw.split(LINK_DELIMITER)
    return parts[-1].strip()


def extract_image(item: RawFeedItem) -> str:
    """Best-effort image URL: item image, first enclosure, first <img> in the body."""
    if item.image:
        return item.image

    if item.enclosures:
        return item.enclosures[0]

    html = item.description or item.content
    if html:
        img = BeautifulSoup(html, "html.parser").find("img")
        if img is not None and img.get("src"):
            return img["src"]

    return ""


def normalize_item(item: RawFeedItem, source_name: str) -> NewsRecord:
    """Build the canonical record for one raw item.

    Empty titles and links are passed through; the publish time is never
    defaulted when the feed did not provide one.
    """
    return NewsRecord(
        title=item.title or "",
        link=sanitize_link(item.link),
        source=source_name,
        image_url=extract_image(item),
        published_at=item.published_at,
    )
