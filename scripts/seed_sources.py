#!/usr/bin/env python3
"""Load the seed catalog (config/sources.json) into the sources table.

Sources whose RSS URL is already present are left alone, so the script can be
re-run safely.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from onefeed.config.log_config import configure_logging
from onefeed.config.settings import settings
from onefeed.config.sources import load_sources
from onefeed.storage.factory import get_source_storage


def main():
    parser = argparse.ArgumentParser(description="Seed the feed source catalog")
    parser.add_argument("--file", default=None, help="Path to a sources JSON file")
    args = parser.parse_args()

    configure_logging("onefeed-seed", level=settings.log_level, json=settings.log_json)

    catalog = get_source_storage()
    created = 0
    for seed in load_sources(args.file):
        if catalog.get_by_url(seed.rss_url):
            continue
        catalog.create_source(name=seed.name, rss_url=seed.rss_url, tags=seed.tags, enabled=seed.enabled)
        created += 1

    print(f"Seeded {created} new sources")


if __name__ == "__main__":
    main()
