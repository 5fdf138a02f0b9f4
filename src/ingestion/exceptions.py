"""Exceptions raised inside the ingestion helpers."""


class IngestionError(Exception):
    """Base class for ingestion errors."""


class InvalidIdentifierError(IngestionError, ValueError):
    """Raised when a source identifier is empty or not a string."""


class RateLimitExceededError(IngestionError):
    """Raised when the source keeps answering HTTP 429 until retries run out."""

    def __init__(self, url: str, retry_after_s: float):
        super().__init__(
            f"Rate limited by source (HTTP 429) for {url}, last wait {retry_after_s:.1f}s"
        )
        self.url = url
        self.retry_after_s = retry_after_s


class PdfValidationError(IngestionError):
    """Raised when a downloaded file is missing, too large or not a PDF."""


class StorageUploadError(IngestionError):
    """Raised when a PDF cannot be persisted to the object store."""
