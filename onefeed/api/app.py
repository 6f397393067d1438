"""HTTP API: news listing, source catalog, tags, and internal collection triggers."""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog

from ..errors import (
    CacheBackendError,
    CollectionTimeout,
    OneFeedError,
    QueryError,
    ValidationError,
)
from ..pipeline.collector import CollectionOrchestrator
from ..services.news_service import NewsService
from ..services.source_service import SourceService

logger = structlog.get_logger()


@dataclass
class AppServices:
    """Everything the routes need, wired once per process."""
    news: NewsService
    sources: SourceService
    orchestrator: CollectionOrchestrator


class NewsListRequest(BaseModel):
    source: List[str] = Field(default_factory=list)
    page: Optional[Any] = None
    limit: Optional[Any] = None


class CreateSourceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    tags: str = ""
    rss_url: str = Field("", alias="rssUrl")


def _as_int(value: Any) -> Optional[int]:
    """Loose integer parsing; anything unparsable becomes None so defaults apply."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _status_for(error: OneFeedError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, CollectionTimeout):
        return 504
    if isinstance(error, QueryError):
        return 503
    return 500


@asynccontextmanager
async def _default_lifespan(app: FastAPI):
    """Build services from the process-wide clients when none were injected."""
    if app.state.services is not None:
        yield
        return

    from ..ingestion.fetcher import RSSFetcher
    from ..pipeline.invalidator import CacheInvalidator
    from ..pipeline.persister import BatchPersister
    from ..storage.factory import get_news_cache, get_news_storage, get_source_storage

    storage = get_news_storage()
    catalog = get_source_storage()
    cache = get_news_cache()

    async with RSSFetcher() as fetcher:
        app.state.services = AppServices(
            news=NewsService(storage, cache),
            sources=SourceService(catalog, storage),
            orchestrator=CollectionOrchestrator(
                catalog=catalog,
                fetcher=fetcher,
                persister=BatchPersister(storage),
                invalidator=CacheInvalidator(cache),
            ),
        )
        logger.info("api_started")
        try:
            yield
        finally:
            await cache.close()
            logger.info("api_stopped")


def create_app(services: AppServices = None) -> FastAPI:
    """Create the API. Pass ``services`` to inject clients (tests do)."""
    app = FastAPI(title="OneFeed", lifespan=_default_lifespan)
    app.state.services = services
    app.state.collect_lock = asyncio.Lock()

    @app.middleware("http")
    async def log_request(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.time()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            time_ms=int((time.time() - start) * 1000),
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(OneFeedError)
    async def handle_app_error(request: Request, exc: OneFeedError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc), error_type=exc.error_type)
        return JSONResponse(status_code=status, content={"error": exc.error_type, "message": str(exc)})

    def get_services() -> AppServices:
        return app.state.services

    @app.get("/health")
    async def health_check():
        """Health check endpoint for load balancers."""
        services = get_services()
        try:
            stats = services.news.storage.get_stats()
        except Exception as e:
            return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})

        try:
            cache_status = "connected" if await services.news.cache.ping() else "unavailable"
        except CacheBackendError:
            cache_status = "unavailable"

        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "database": "connected",
            "cache": cache_status,
            "news": stats.get("total_news", 0),
        }

    @app.post("/news")
    async def list_news(body: NewsListRequest):
        items = await get_services().news.get_news(
            body.source,
            page=_as_int(body.page),
            page_size=_as_int(body.limit),
        )
        return [item.to_dict() for item in items]

    @app.get("/sources")
    async def list_sources(
        page_limit: int = Query(20, alias="pageLimit"),
        page_offset: int = Query(0, alias="pageOffset"),
    ):
        entries = get_services().sources.list_sources(page_limit=page_limit, page_offset=page_offset)
        return {"sources": [e.to_dict() for e in entries]}

    @app.post("/sources")
    async def create_source(body: CreateSourceRequest):
        entry = get_services().sources.create_source(name=body.name, rss_url=body.rss_url, tags=body.tags)
        return entry.to_dict()

    @app.get("/tags")
    async def list_tags():
        return get_services().sources.list_tags()

    @app.get("/internal/collect")
    async def collect():
        lock: asyncio.Lock = app.state.collect_lock
        if lock.locked():
            raise HTTPException(status_code=409, detail="collection already running")
        async with lock:
            report = await get_services().orchestrator.run()
        return report.to_dict()

    @app.post("/internal/news/cleanup")
    async def cleanup_old_news():
        removed = get_services().news.remove_old_news()
        return {"removed": removed}

    return app
