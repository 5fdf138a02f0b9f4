"""
Configuration settings for the ingestion pipeline.

Settings are plain dataclasses with documented defaults. from_env() reads the
process environment (after loading .env) and validates values eagerly so a
bad deployment fails before any job starts.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv


USER_AGENT = "PublicDomainLibraryIngest/1.0 (Educational Library System)"


def _env_int(env: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class FetcherConfig:
    """Rate limiting, retry and timeout policy for outbound requests."""

    min_interval_ms: int = 1500  # Minimum spacing between two requests
    max_retries: int = 3  # Attempts per request, 429 responses included
    retry_delay_ms: int = 1000  # Base of the exponential backoff
    timeout_s: float = 30.0
    batch_size: int = 30
    user_agent: str = USER_AGENT

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.min_interval_ms < 0 or self.retry_delay_ms < 0:
            raise ValueError("Delays must be non-negative")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "FetcherConfig":
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            min_interval_ms=_env_int(env, "INGEST_RATE_LIMIT_MS", 1500),
            max_retries=_env_int(env, "INGEST_MAX_RETRIES", 3, minimum=1),
            retry_delay_ms=_env_int(env, "INGEST_RETRY_DELAY_MS", 1000),
            timeout_s=float(_env_int(env, "INGEST_TIMEOUT_S", 30, minimum=1)),
            batch_size=_env_int(env, "INGEST_BATCH_SIZE", 30, minimum=1),
        )


@dataclass(frozen=True)
class IngestionSettings:
    """Deployment settings for a full ingestion run."""

    database_url: str = "sqlite:///data/catalog.db"
    storage_backend: str = "local"  # "local" or "cloud"
    local_storage_dir: str = "data/storage"
    source_name: str = "internet_archive"
    delay_between_books_ms: int = 1000
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)

    def __post_init__(self):
        if self.storage_backend not in ("local", "cloud"):
            raise ValueError(
                f"STORAGE_BACKEND must be 'local' or 'cloud', got {self.storage_backend!r}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "IngestionSettings":
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            database_url=env.get("DATABASE_URL") or cls.database_url,
            storage_backend=(env.get("STORAGE_BACKEND") or "local").strip().lower(),
            local_storage_dir=env.get("LOCAL_STORAGE_DIR") or cls.local_storage_dir,
            source_name=env.get("INGEST_SOURCE_NAME") or cls.source_name,
            delay_between_books_ms=_env_int(env, "INGEST_DELAY_BETWEEN_BOOKS_MS", 1000),
            fetcher=FetcherConfig.from_env(env),
        )
