"""Cache key scheme for news listings.

Every listing key lives under ``<prefix>:listing:`` so that a single prefix
scan finds all of them after new news is stored. Keys also carry the cache
generation; bumping ``<prefix>:gen`` makes every older listing unreachable,
including write-backs that land after the purge.
"""

import hashlib
import json
from typing import Sequence


def listing_prefix(prefix: str) -> str:
    return f"{prefix}:listing"


def generation_key(prefix: str) -> str:
    return f"{prefix}:gen"


def listing_key(prefix: str, sources: Sequence[str], page: int, limit: int, generation: int = 0) -> str:
    """Deterministic key for one (generation, source filter, page, page size) request.

    The source list is hashed in the order given; two requests naming the
    same sources in a different order are cached separately.
    """
    encoded = json.dumps(list(sources), ensure_ascii=False, separators=(",", ":"))
    digest = hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:16]
    return f"{listing_prefix(prefix)}:g{generation}:{digest}:page={page}:limit={limit}"


def prefix_pattern(prefix: str) -> str:
    """SCAN pattern matching every key under ``prefix``."""
    return f"{prefix}:*"
