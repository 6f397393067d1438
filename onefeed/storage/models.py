"""SQLAlchemy models for the news database."""

from datetime import datetime

from sqlalchemy import create_engine, Column, BigInteger, Integer, Text, Boolean, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_BigIntId = BigInteger().with_variant(Integer, "sqlite")


class NewsModel(Base):
    """Database model for collected news. Rows are inserted once and never updated."""
    __tablename__ = "news"

    id = Column(_BigIntId, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False, default="")
    # NULL for items without a link, so they never collide on the unique index
    link = Column(Text, unique=True, nullable=True)
    source = Column(Text, nullable=False)  # copy of the source name, not a foreign key
    image_url = Column(Text)
    publish_date = Column(DateTime)
    fetched_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_news_source_publish_date', 'source', 'publish_date'),
        Index('idx_news_publish_date', 'publish_date'),
    )


class SourceModel(Base):
    """Database model for the feed source catalog."""
    __tablename__ = "sources"

    id = Column(_BigIntId, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    tags = Column(Text)
    rss_url = Column(Text)
    enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_sources_created_at', 'created_at'),
    )


def init_db(database_url: str, **engine_kwargs):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False, **engine_kwargs)
    Base.metadata.create_all(engine)
    return engine
