"""Read-side services."""

from .news_service import NewsService, NewsResponse, ListingRequest, normalize_request
from .source_service import SourceService

__all__ = ["NewsService", "NewsResponse", "ListingRequest", "normalize_request", "SourceService"]
