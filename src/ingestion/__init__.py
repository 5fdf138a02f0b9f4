"""
Ingestion package for the public-domain book catalog.

This package contains the building blocks used by the pipeline to pull
books from an archive source:

1. Fetching (fetchers/, rate_limiter.py):
   - Queries the archive search API one page at a time
   - Spaces requests, honours HTTP 429 and retries with backoff

2. Deduplication (deduplicator.py):
   - Skips identifiers already in the catalog or repeated in a batch

3. PDF handling (pdf_validator.py):
   - Downloads PDFs with size limits and %PDF header validation
   - Sanitizes identifiers into safe storage filenames

Modules:
    config: FetcherConfig and IngestionSettings dataclasses
    records: BookMetadata, GenreClassification, FilterDecision, JobResult
    exceptions: IngestionError hierarchy

Usage:
    uv run -m src.pipeline --batch-size 10 --dry-run
"""

from .config import FetcherConfig, IngestionSettings
from .exceptions import (
    IngestionError,
    InvalidIdentifierError,
    PdfValidationError,
    RateLimitExceededError,
    StorageUploadError,
)
from .records import (
    BookMetadata,
    FilterCandidate,
    FilterDecision,
    FilterResult,
    GenreClassification,
    JobError,
    JobResult,
    JobStatus,
)

__all__ = [
    "FetcherConfig",
    "IngestionSettings",
    "IngestionError",
    "InvalidIdentifierError",
    "PdfValidationError",
    "RateLimitExceededError",
    "StorageUploadError",
    "BookMetadata",
    "FilterCandidate",
    "FilterDecision",
    "FilterResult",
    "GenreClassification",
    "JobError",
    "JobResult",
    "JobStatus",
]
