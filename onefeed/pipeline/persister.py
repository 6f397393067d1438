"""Batched writes of normalized news into storage."""

from dataclasses import dataclass
from typing import Sequence

import structlog

from ..config.settings import settings
from ..errors import PersistenceError, StorageError
from ..ingestion.interfaces import NewsRecord

logger = structlog.get_logger()


@dataclass
class PersistResult:
    batches: int = 0
    inserted: int = 0
    total: int = 0

    @property
    def skipped(self) -> int:
        """Records dropped by the unique-link constraint."""
        return self.total - self.inserted


class BatchPersister:
    """Write records in fixed-size batches, one multi-row insert per batch.

    Duplicate links are skipped by storage. A failed batch stops the run;
    earlier batches stay committed and are not retried here.
    """

    def __init__(self, storage, batch_size: int = None):
        self.storage = storage
        self.batch_size = settings.persist_batch_size if batch_size is None else batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be positive")

    def persist(self, records: Sequence[NewsRecord]) -> PersistResult:
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size
        result = PersistResult(total=len(records))

        for start in range(0, len(records), self.batch_size):
            batch = records[start:start + self.batch_size]
            try:
                result.inserted += self.storage.bulk_insert_news(batch)
            except StorageError as e:
                logger.error(
                    "news_batch_failed",
                    batch=result.batches + 1,
                    batches_committed=result.batches,
                    total_batches=total_batches,
                    error=str(e),
                )
                raise PersistenceError(result.batches, total_batches, cause=e) from e
            result.batches += 1

        logger.info(
            "news_persisted",
            batches=result.batches,
            inserted=result.inserted,
            skipped=result.skipped,
        )
        return result
