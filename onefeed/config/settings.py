"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="OF_",  # OF_DATABASE_URL, OF_REDIS_URL, etc.
    )

    # Paths - computed from base_dir
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"
    sources_file: Path = _BASE_DIR / "config" / "sources.json"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'onefeed.db'}"
    database_pool_size: int = 25
    database_pool_recycle_seconds: int = 3600

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 3.0
    redis_connect_timeout: float = 5.0
    cache_prefix: str = "news"
    cache_ttl_seconds: Optional[int] = None  # no expiry; listings are purged after each collection

    # Collection
    collection_timeout_seconds: float = 300.0
    fetch_timeout_seconds: float = 30.0
    fetch_max_retries: int = 3
    user_agent: str = "OneFeedBot/1.0"

    # Persistence
    persist_batch_size: int = 100
    retention_days: int = 30

    # Query
    default_page_size: int = 20
    max_page_size: int = 100

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Worker
    collect_interval_minutes: int = 30
    retention_hour_utc: int = 3


settings = Settings()
