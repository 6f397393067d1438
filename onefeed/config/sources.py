"""Seed catalog loader."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .settings import settings


@dataclass
class SourceSeed:
    """A catalog entry read from the seed file."""
    name: str
    rss_url: str
    tags: str = ""
    enabled: bool = True


def load_sources(config_path: str = None) -> List[SourceSeed]:
    """Load source definitions from a JSON file."""
    if config_path is None:
        config_path = settings.sources_file

    with open(Path(config_path), encoding="utf-8") as f:
        data = json.load(f)

    seeds = []
    for source_data in data.get("sources", []):
        seeds.append(SourceSeed(
            name=source_data["name"],
            rss_url=source_data["rss_url"],
            tags=source_data.get("tags", ""),
            enabled=source_data.get("enabled", True),
        ))

    return seeds
