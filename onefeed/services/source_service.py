"""Source catalog and tag listing."""

from typing import List

import structlog

from ..errors import ValidationError
from ..storage.sources import SourceEntry

logger = structlog.get_logger()


class SourceService:
    """Create and list feed sources; list tags (source names with stored news)."""

    def __init__(self, catalog, news_storage):
        self.catalog = catalog
        self.news_storage = news_storage

    def list_sources(self, page_limit: int = 20, page_offset: int = 0) -> List[SourceEntry]:
        if page_limit is None or page_limit < 1:
            page_limit = 20
        if page_offset is None or page_offset < 0:
            page_offset = 0
        return self.catalog.list_sources(limit=page_limit, offset=page_offset)

    def create_source(self, name: str, rss_url: str = "", tags: str = "") -> SourceEntry:
        name = (name or "").strip()
        if not name:
            raise ValidationError("invalid request: name is required")
        return self.catalog.create_source(name=name, rss_url=(rss_url or "").strip(), tags=tags or "")

    def list_tags(self) -> List[str]:
        return self.news_storage.list_source_names()
