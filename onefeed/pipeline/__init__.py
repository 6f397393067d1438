"""Pipeline orchestration - collection runs."""

from .collector import CollectionOrchestrator, CollectionReport, CollectionState, run_collection
from .persister import BatchPersister, PersistResult
from .invalidator import CacheInvalidator

__all__ = [
    "CollectionOrchestrator", "CollectionReport", "CollectionState", "run_collection",
    "BatchPersister", "PersistResult", "CacheInvalidator",
]
