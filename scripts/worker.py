"""Production worker for scheduled collection tasks.

This worker runs as a separate service and handles:
- Periodic news collection (every OF_COLLECT_INTERVAL_MINUTES, default 30)
- Retention sweep of news older than OF_RETENTION_DAYS (daily)
- Health monitoring (hourly)

Usage:
    python scripts/worker.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string (defaults to local SQLite)
    REDIS_URL: Redis connection string for the listing cache
"""

import os
import sys
import asyncio
from datetime import datetime
import signal

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
import structlog

from onefeed.config.log_config import configure_logging
from onefeed.config.settings import settings
from onefeed.errors import OneFeedError

logger = structlog.get_logger()


class CollectionWorker:
    """Manages scheduled collection tasks."""

    def __init__(self):
        from onefeed.storage.factory import get_news_storage

        self.storage = get_news_storage()
        self.scheduler = AsyncIOScheduler()
        self.running = True
        self._collecting = asyncio.Lock()

    def setup_jobs(self):
        """Configure scheduled jobs."""
        self.scheduler.add_job(
            self.collect_news,
            IntervalTrigger(minutes=settings.collect_interval_minutes),
            id='collect_news',
            name='Collect RSS news',
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=600
        )

        self.scheduler.add_job(
            self.remove_old_news,
            CronTrigger(hour=settings.retention_hour_utc),
            id='remove_old_news',
            name='Remove news past retention',
            replace_existing=True,
            misfire_grace_time=3600
        )

        self.scheduler.add_job(
            self.health_check,
            IntervalTrigger(hours=1),
            id='health_check',
            name='Health check',
            replace_existing=True
        )

    async def collect_news(self):
        """Run one collection pass."""
        from onefeed.pipeline.collector import run_collection

        if self._collecting.locked():
            logger.warning("job_skipped", job="collect_news", reason="previous run still active")
            return {"skipped": True}

        async with self._collecting:
            start_time = datetime.now()
            logger.info("job_started", job="collect_news")
            try:
                report = await run_collection()
            except OneFeedError as e:
                logger.error("job_failed", job="collect_news", error=str(e), error_type=e.error_type)
                return {"error": str(e)}

            elapsed = (datetime.now() - start_time).total_seconds()
            logger.info("job_completed", job="collect_news",
                        inserted=report.inserted, failed_sources=len(report.failed_sources),
                        elapsed_seconds=elapsed)
            return report.to_dict()

    async def remove_old_news(self):
        """Delete news older than the retention window."""
        try:
            removed = self.storage.remove_older_than()
        except OneFeedError as e:
            logger.error("job_failed", job="remove_old_news", error=str(e))
            return {"error": str(e)}

        logger.info("job_completed", job="remove_old_news", removed=removed)
        return {"removed": removed}

    async def health_check(self):
        """Log storage stats."""
        try:
            stats = self.storage.get_stats()
        except OneFeedError as e:
            logger.error("health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        logger.debug("health_check", news=stats)
        return {"status": "healthy", "stats": stats}

    def start(self):
        """Start the worker."""
        self.setup_jobs()
        self.scheduler.start()
        logger.info("worker_started", jobs=len(self.scheduler.get_jobs()))

    def stop(self):
        """Stop the worker gracefully."""
        self.running = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("worker_stopped")


async def main():
    """Main entry point."""
    configure_logging("onefeed-worker", level=settings.log_level, json=settings.log_json)
    worker = CollectionWorker()

    def signal_handler(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        worker.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    worker.start()

    # Run immediately on startup
    logger.info("running_initial_tasks")
    await worker.collect_news()
    await worker.health_check()

    while worker.running:
        await asyncio.sleep(1)

    worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
