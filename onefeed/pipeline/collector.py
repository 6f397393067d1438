"""Collection run orchestration: fetch all sources, persist, invalidate listings."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import structlog

from ..config.settings import settings
from ..errors import (
    CacheInvalidationError,
    CatalogError,
    CollectionTimeout,
    FetchError,
    FetchTimeout,
    PersistenceError,
)
from ..ingestion.interfaces import CatalogInterface, FeedSource, FetcherInterface, NewsRecord
from ..ingestion.normalizer import normalize_item
from .invalidator import CacheInvalidator
from .persister import BatchPersister

logger = structlog.get_logger()


class CollectionState(Enum):
    """Lifecycle of a collection run. TIMED_OUT and FAILED are terminal."""
    IDLE = "idle"
    FETCHING_ALL = "fetching_all"
    PERSISTING = "persisting"
    INVALIDATING_CACHE = "invalidating_cache"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class CollectionReport:
    """Summary of one collection run."""
    state: CollectionState = CollectionState.IDLE
    sources: int = 0
    fetched: int = 0
    failed_sources: Dict[str, str] = field(default_factory=dict)
    batches: int = 0
    inserted: int = 0
    invalidated_keys: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "state": self.state.value,
            "sources": self.sources,
            "fetched": self.fetched,
            "failed_sources": dict(self.failed_sources),
            "batches": self.batches,
            "inserted": self.inserted,
            "invalidated_keys": self.invalidated_keys,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


class CollectionOrchestrator:
    """Fan out fetch+normalize over every active source, then persist and invalidate.

    Each source runs in its own task under two deadlines: a per-source fetch
    timeout and a deadline shared by the whole run. If the shared deadline
    passes before every source has finished, nothing from the run is
    persisted. A failing source only costs its own records.
    """

    def __init__(
        self,
        catalog: CatalogInterface,
        fetcher: FetcherInterface,
        persister: BatchPersister,
        invalidator: CacheInvalidator,
        collection_timeout: float = None,
        fetch_timeout: float = None,
    ):
        self.catalog = catalog
        self.fetcher = fetcher
        self.persister = persister
        self.invalidator = invalidator
        if collection_timeout is None:
            collection_timeout = settings.collection_timeout_seconds
        if fetch_timeout is None:
            fetch_timeout = settings.fetch_timeout_seconds
        self.collection_timeout = collection_timeout
        self.fetch_timeout = fetch_timeout
        self.state = CollectionState.IDLE

    def _transition(self, report: CollectionReport, state: CollectionState, **context) -> None:
        logger.info("collection_state", previous=self.state.value, state=state.value, **context)
        self.state = state
        report.state = state

    async def run(self) -> CollectionReport:
        """Run one collection. Returns the report or raises the terminal error."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        report = CollectionReport()
        self.state = CollectionState.IDLE

        try:
            sources = self.catalog.list_active_sources()
        except CatalogError as e:
            self._transition(report, CollectionState.FAILED, error=str(e))
            raise

        report.sources = len(sources)
        self._transition(report, CollectionState.FETCHING_ALL, sources=len(sources))

        deadline = start + self.collection_timeout
        merged: List[NewsRecord] = []
        lock = asyncio.Lock()
        cut_short: List[str] = []

        tasks = {
            asyncio.create_task(
                self._collect_source(source, deadline, merged, lock, cut_short),
                name=f"collect:{source.name}",
            ): source
            for source in sources
        }

        done, pending = set(), set()
        if tasks:
            done, pending = await asyncio.wait(list(tasks), timeout=max(deadline - loop.time(), 0))

        if pending or cut_short:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                task.exception()  # discarded with the rest of the run
            outstanding = sorted({tasks[t].name for t in pending} | set(cut_short))
            report.elapsed_seconds = loop.time() - start
            self._transition(report, CollectionState.TIMED_OUT, outstanding=outstanding)
            raise CollectionTimeout(self.collection_timeout, len(outstanding))

        for task, source in tasks.items():
            error = task.exception()
            if error is None:
                continue
            report.failed_sources[source.name] = str(error)
            if isinstance(error, FetchError):
                logger.warning("source_fetch_failed", source=source.name, error=str(error))
            else:
                logger.error(
                    "source_collect_error",
                    source=source.name,
                    error=str(error),
                    error_type=type(error).__name__,
                )

        report.fetched = len(merged)
        logger.info(
            "all_sources_fetched",
            sources=len(sources),
            failed=len(report.failed_sources),
            records=len(merged),
        )

        self._transition(report, CollectionState.PERSISTING, records=len(merged))
        try:
            result = self.persister.persist(merged)
        except PersistenceError as e:
            report.batches = e.batches_committed
            report.elapsed_seconds = loop.time() - start
            self._transition(report, CollectionState.FAILED, error=str(e))
            raise
        report.batches = result.batches
        report.inserted = result.inserted

        self._transition(report, CollectionState.INVALIDATING_CACHE)
        try:
            report.invalidated_keys = await self.invalidator.invalidate()
        except CacheInvalidationError as e:
            report.elapsed_seconds = loop.time() - start
            self._transition(report, CollectionState.FAILED, error=str(e))
            raise

        report.elapsed_seconds = loop.time() - start
        self._transition(
            report,
            CollectionState.DONE,
            inserted=report.inserted,
            elapsed_s=round(report.elapsed_seconds, 3),
        )
        return report

    async def _collect_source(
        self,
        source: FeedSource,
        deadline: float,
        merged: List[NewsRecord],
        lock: asyncio.Lock,
        cut_short: List[str],
    ) -> int:
        """Fetch and normalize one source, then append its records in one step."""
        loop = asyncio.get_running_loop()

        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.warning("source_skipped_past_deadline", source=source.name)
            cut_short.append(source.name)
            return 0

        clipped = remaining < self.fetch_timeout
        try:
            raw_items = await self.fetcher.fetch(source, timeout=min(self.fetch_timeout, remaining))
        except FetchTimeout:
            # hitting a timeout that was shortened to the shared deadline means the run is out of time
            if clipped:
                cut_short.append(source.name)
            raise

        local: List[NewsRecord] = []
        for item in raw_items:
            if loop.time() >= deadline:
                logger.warning("source_cut_short", source=source.name, processed=len(local))
                cut_short.append(source.name)
                break
            local.append(normalize_item(item, source.name))

        async with lock:
            merged.extend(local)
        return len(local)


async def run_collection(
    collection_timeout: Optional[float] = None,
    fetch_timeout: Optional[float] = None,
) -> CollectionReport:
    """Run one collection with the process-wide storage and cache clients."""
    from ..ingestion.fetcher import RSSFetcher
    from ..storage.factory import get_news_cache, get_news_storage, get_source_storage

    async with RSSFetcher() as fetcher:
        orchestrator = CollectionOrchestrator(
            catalog=get_source_storage(),
            fetcher=fetcher,
            persister=BatchPersister(get_news_storage()),
            invalidator=CacheInvalidator(get_news_cache()),
            collection_timeout=collection_timeout,
            fetch_timeout=fetch_timeout,
        )
        return await orchestrator.run()
