"""Database operations for news storage."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, List, Sequence
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
import structlog

from .models import NewsModel, init_db
from ..ingestion.interfaces import NewsRecord
from ..config.settings import settings
from ..errors import StorageError, QueryError

logger = structlog.get_logger()


@dataclass(frozen=True)
class NewsRow:
    """A persisted news item."""
    id: int
    title: str
    link: str
    source: str
    image_url: str
    published_at: Optional[datetime]
    fetched_at: Optional[datetime]


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "pool_recycle": settings.database_pool_recycle_seconds,
        "pool_pre_ping": True,
    }


class NewsStorage:
    """SQLAlchemy-backed news storage (SQLite locally, PostgreSQL in production)."""

    def __init__(self, database_url: str = None, engine=None):
        if engine is None:
            if database_url is None:
                database_url = settings.database_url

            # Ensure data directory exists
            if database_url.startswith("sqlite:///"):
                db_path = database_url.replace("sqlite:///", "")
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            engine = init_db(database_url, **_engine_kwargs(database_url))

        self.engine = engine
        self.Session = sessionmaker(bind=self.engine)

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        if self.engine.dialect.name == "postgresql":
            return postgresql.insert(NewsModel)
        return sqlite.insert(NewsModel)

    def bulk_insert_news(self, records: Sequence[NewsRecord]) -> int:
        """Insert records in one multi-row statement, skipping links that already exist.

        Returns the number of rows actually inserted.
        """
        if not records:
            return 0

        fetched_at = datetime.utcnow()
        rows = [
            {
                "title": r.title,
                "link": r.link or None,
                "source": r.source,
                "image_url": r.image_url,
                "publish_date": r.published_at,
                "fetched_at": fetched_at,
            }
            for r in records
        ]
        stmt = self._insert().values(rows).on_conflict_do_nothing(index_elements=["link"])

        session = self.Session()
        try:
            result = session.execute(stmt)
            session.commit()
            inserted = max(result.rowcount or 0, 0)
            logger.debug("news_batch_inserted", inserted=inserted, total=len(rows))
            return inserted
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"bulk insert failed: {e}") from e
        finally:
            session.close()

    def list_news(self, sources: Sequence[str], offset: int, limit: int) -> List[NewsRow]:
        """Get news from the given sources, newest publish date first."""
        stmt = (
            select(NewsModel)
            .where(NewsModel.source.in_(list(sources)))
            .order_by(NewsModel.publish_date.desc().nulls_last(), NewsModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        session = self.Session()
        try:
            models = session.scalars(stmt).all()
            return [self._model_to_row(m) for m in models]
        except SQLAlchemyError as e:
            raise QueryError(f"news query failed: {e}") from e
        finally:
            session.close()

    def get_by_link(self, link: str) -> Optional[NewsRow]:
        """Get news item by canonical link."""
        session = self.Session()
        try:
            model = session.scalars(
                select(NewsModel).where(NewsModel.link == link)
            ).first()
            return self._model_to_row(model) if model else None
        except SQLAlchemyError as e:
            raise QueryError(f"news lookup failed: {e}") from e
        finally:
            session.close()

    def list_source_names(self) -> List[str]:
        """Distinct source names present in stored news."""
        session = self.Session()
        try:
            names = session.scalars(
                select(NewsModel.source).distinct().order_by(NewsModel.source)
            ).all()
            return list(names)
        except SQLAlchemyError as e:
            raise QueryError(f"source name query failed: {e}") from e
        finally:
            session.close()

    def remove_older_than(self, days: int = None) -> int:
        """Delete news published more than ``days`` days ago. Returns rows removed."""
        days = days if days is not None else settings.retention_days
        cutoff = datetime.utcnow() - timedelta(days=days)
        session = self.Session()
        try:
            result = session.execute(
                delete(NewsModel).where(NewsModel.publish_date < cutoff)
            )
            session.commit()
            removed = result.rowcount or 0
            logger.info("old_news_removed", removed=removed, cutoff=cutoff.isoformat())
            return removed
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"retention sweep failed: {e}") from e
        finally:
            session.close()

    def get_stats(self) -> dict:
        """Get database statistics."""
        session = self.Session()
        try:
            total = session.scalar(select(func.count()).select_from(NewsModel))
            sources = session.scalar(select(func.count(NewsModel.source.distinct())))
            latest = session.scalar(select(func.max(NewsModel.fetched_at)))
            return {
                "total_news": total or 0,
                "sources": sources or 0,
                "last_fetched_at": latest.isoformat() if latest else None,
            }
        except SQLAlchemyError as e:
            raise QueryError(f"stats query failed: {e}") from e
        finally:
            session.close()

    def _model_to_row(self, model: NewsModel) -> NewsRow:
        """Convert database model to NewsRow."""
        return NewsRow(
            id=model.id,
            title=model.title or "",
            link=model.link or "",
            source=model.source,
            image_url=model.image_url or "",
            published_at=model.publish_date,
            fetched_at=model.fetched_at,
        )
