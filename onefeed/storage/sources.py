"""Feed source catalog."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
import structlog

from .models import SourceModel
from ..ingestion.interfaces import FeedSource, CatalogInterface
from ..errors import CatalogError, QueryError, StorageError

logger = structlog.get_logger()


@dataclass(frozen=True)
class SourceEntry:
    """A catalog row as exposed by the API."""
    id: int
    name: str
    tags: str
    rss_url: str
    enabled: bool
    created_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tags": self.tags,
            "rssUrl": self.rss_url,
            "enabled": self.enabled,
        }


class SourceStorage(CatalogInterface):
    """Catalog of feed sources, sharing the news database engine."""

    def __init__(self, engine):
        self.engine = engine
        self.Session = sessionmaker(bind=engine)

    def list_active_sources(self) -> List[FeedSource]:
        """Enabled sources with a feed URL, in catalog order."""
        session = self.Session()
        try:
            models = session.scalars(
                select(SourceModel)
                .where(SourceModel.enabled.is_(True))
                .where(SourceModel.rss_url.isnot(None))
                .where(SourceModel.rss_url != "")
                .order_by(SourceModel.id)
            ).all()
            return [
                FeedSource(id=m.id, name=m.name, url=m.rss_url, tags=m.tags or "", enabled=m.enabled)
                for m in models
            ]
        except SQLAlchemyError as e:
            logger.error("catalog_read_failed", error=str(e))
            raise CatalogError(f"could not list sources: {e}") from e
        finally:
            session.close()

    def list_sources(self, limit: int = 20, offset: int = 0) -> List[SourceEntry]:
        """Page through the catalog, newest first."""
        session = self.Session()
        try:
            models = session.scalars(
                select(SourceModel)
                .order_by(SourceModel.created_at.desc(), SourceModel.id.desc())
                .limit(limit)
                .offset(offset)
            ).all()
            return [self._model_to_entry(m) for m in models]
        except SQLAlchemyError as e:
            raise CatalogError(f"could not list sources: {e}") from e
        finally:
            session.close()

    def create_source(self, name: str, rss_url: str = "", tags: str = "", enabled: bool = True) -> SourceEntry:
        """Add a source to the catalog."""
        session = self.Session()
        try:
            model = SourceModel(
                name=name,
                tags=tags or None,
                rss_url=rss_url or None,
                enabled=enabled,
            )
            session.add(model)
            session.commit()
            logger.info("source_created", id=model.id, name=name)
            return self._model_to_entry(model)
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"could not create source: {e}") from e
        finally:
            session.close()

    def get_by_url(self, rss_url: str) -> Optional[SourceEntry]:
        """Get a source by feed URL."""
        session = self.Session()
        try:
            model = session.scalars(
                select(SourceModel).where(SourceModel.rss_url == rss_url)
            ).first()
            return self._model_to_entry(model) if model else None
        except SQLAlchemyError as e:
            raise QueryError(f"source lookup failed: {e}") from e
        finally:
            session.close()

    def _model_to_entry(self, model: SourceModel) -> SourceEntry:
        return SourceEntry(
            id=model.id,
            name=model.name,
            tags=model.tags or "",
            rss_url=model.rss_url or "",
            enabled=bool(model.enabled),
            created_at=model.created_at,
        )
