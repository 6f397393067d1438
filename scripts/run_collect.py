#!/usr/bin/env python3
"""Run one collection pass: fetch every active source, persist, invalidate the cache."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from onefeed.config.log_config import configure_logging
from onefeed.config.settings import settings
from onefeed.errors import OneFeedError
from onefeed.pipeline.collector import run_collection


def main():
    configure_logging("onefeed-collect", level=settings.log_level, json=settings.log_json)

    print("\n" + "=" * 50)
    print("ONEFEED COLLECTION")
    print("=" * 50 + "\n")

    try:
        report = asyncio.run(run_collection())
    except OneFeedError as e:
        print(f"\nFAILED ({e.error_type}): {e}\n")
        sys.exit(1)

    print("RESULTS:")
    print(f"  Sources: {report.sources} active, {len(report.failed_sources)} failed")
    for name, reason in sorted(report.failed_sources.items()):
        print(f"    - {name}: {reason}")
    print(f"  Items: {report.fetched} fetched, {report.inserted} new in {report.batches} batches")
    print(f"  Cache keys invalidated: {report.invalidated_keys}")
    print(f"TIME: {report.elapsed_seconds:.1f}s\n")


if __name__ == "__main__":
    main()
