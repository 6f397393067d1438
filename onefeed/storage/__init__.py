"""Database storage and models."""

from .database import NewsStorage, NewsRow
from .sources import SourceStorage, SourceEntry
from .models import NewsModel, SourceModel, init_db

__all__ = ["NewsStorage", "NewsRow", "SourceStorage", "SourceEntry", "NewsModel", "SourceModel", "init_db"]
