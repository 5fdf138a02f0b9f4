from abc import ABC, abstractmethod
from typing import Any, Mapping

from ..records import BookMetadata


class BookFetcher(ABC):
    """
    Interface for archive sources.

    Implementations compose a RateLimitedClient for rate limiting and
    retries; this class carries no shared behaviour.
    """

    source_name: str

    @abstractmethod
    def fetch_batch(self, page: int = 1, batch_size: int = 30) -> list[BookMetadata]:
        """Fetch one page of candidate records.

        Args:
            page (int): 1-based page number.
            batch_size (int): Number of records per page.

        Returns:
            list[BookMetadata]: Parsed records, in source order. Records
            without an identifier are dropped.

        Raises:
            requests.RequestException: When retries are exhausted.
        """

    @abstractmethod
    def build_download_url(self, identifier: str) -> str:
        """Return the PDF download URL for an identifier.

        Raises:
            InvalidIdentifierError: If identifier is empty or not a string.
        """

    @abstractmethod
    def parse_record(self, doc: Mapping[str, Any]) -> BookMetadata:
        """Normalize one raw source document."""
