"""
Internet Archive fetcher.

Queries the Advanced Search API for public-domain texts that have a PDF
derivative, most downloaded first, and normalizes each document into a
BookMetadata. All HTTP goes through a RateLimitedClient.
"""

import logging
from typing import Any, Mapping, Optional

from ..config import FetcherConfig
from ..exceptions import InvalidIdentifierError
from ..rate_limiter import RateLimitedClient
from ..records import BookMetadata
from .base import BookFetcher


SEARCH_URL = "https://archive.org/advancedsearch.php"
DOWNLOAD_URL = "https://archive.org/download/{identifier}/{identifier}.pdf"
SEARCH_QUERY = "mediatype:texts AND format:pdf AND date:[* TO 1927]"
SEARCH_FIELDS = ("identifier", "title", "creator", "date", "language", "description")

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"


def _first(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return str(value[0]) if value else None
    return str(value) if value else None


def _joined(value: Any, separator: str) -> Optional[str]:
    if isinstance(value, list):
        parts = [str(v) for v in value if v]
        return separator.join(parts) if parts else None
    return str(value) if value else None


class InternetArchiveFetcher(BookFetcher):
    """BookFetcher for archive.org."""

    source_name = "internet_archive"

    def __init__(
        self,
        client: Optional[RateLimitedClient] = None,
        config: Optional[FetcherConfig] = None,
    ):
        self.config = config or (client.config if client else FetcherConfig())
        self.client = client or RateLimitedClient(self.config)
        self.logger = logging.getLogger("fetcher")

    @staticmethod
    def build_search_params(page: int, batch_size: int) -> dict[str, Any]:
        return {
            "q": SEARCH_QUERY,
            "fl[]": list(SEARCH_FIELDS),
            "sort[]": "downloads desc",
            "rows": batch_size,
            "page": page,
            "output": "json",
        }

    def fetch_batch(
        self, page: int = 1, batch_size: Optional[int] = None
    ) -> list[BookMetadata]:
        batch_size = batch_size or self.config.batch_size
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        self.logger.info(f"Fetching page {page} (batch size {batch_size}) from {SEARCH_URL}")
        data = self.client.get_json(
            SEARCH_URL, params=self.build_search_params(page, batch_size)
        )

        response = data.get("response") if isinstance(data, Mapping) else None
        docs = response.get("docs") if isinstance(response, Mapping) else None
        if not isinstance(docs, list):
            self.logger.warning("No documents found in search response")
            return []

        books = [
            self.parse_record(doc)
            for doc in docs
            if isinstance(doc, Mapping) and doc.get("identifier")
        ]
        dropped = len(docs) - len(books)
        if dropped:
            self.logger.warning(f"Dropped {dropped} malformed or unidentified documents")
        self.logger.info(f"Fetched {len(books)} books from page {page}")
        return books

    def build_download_url(self, identifier: str) -> str:
        if not isinstance(identifier, str) or not identifier.strip():
            raise InvalidIdentifierError(
                "Invalid identifier: must be a non-empty string"
            )
        return DOWNLOAD_URL.format(identifier=identifier)

    def parse_record(self, doc: Mapping[str, Any]) -> BookMetadata:
        """
        Normalize one search document.

        Multi-valued creators are joined with ", ", only the first language
        is kept and description fragments are joined with a space. Missing
        title and creator fall back to placeholders rather than rejecting
        the record.
        """
        return BookMetadata(
            identifier=str(doc.get("identifier") or ""),
            title=_first(doc.get("title")) or UNKNOWN_TITLE,
            creator=_joined(doc.get("creator"), ", ") or UNKNOWN_AUTHOR,
            date=_first(doc.get("date")),
            language=_first(doc.get("language")),
            description=_joined(doc.get("description"), " "),
        )
