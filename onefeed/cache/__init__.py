"""Listing cache."""

from .keys import generation_key, listing_key, listing_prefix, prefix_pattern
from .redis_cache import NewsCache

__all__ = ["NewsCache", "generation_key", "listing_key", "listing_prefix", "prefix_pattern"]
