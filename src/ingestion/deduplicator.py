"""
Duplicate detection against the catalog.

The catalog is anything exposing existing_identifiers(ids) -> set[str] and
exists(identifier) -> bool (CatalogWriter in production). A batch costs one
lookup query regardless of its size.
"""

import logging
from typing import Iterable, Protocol

from .records import BookMetadata


class IdentifierLookup(Protocol):
    def existing_identifiers(self, identifiers: Iterable[str]) -> set[str]: ...

    def exists(self, identifier: str) -> bool: ...


class Deduplicator:
    def __init__(self, catalog: IdentifierLookup):
        self.catalog = catalog
        self.logger = logging.getLogger("pipeline")

    def is_duplicate(self, identifier: str) -> bool:
        return self.catalog.exists(identifier)

    def filter_new(self, books: list[BookMetadata]) -> tuple[list[BookMetadata], int]:
        """
        Split a batch into books that still need processing and a skip count.

        A book is skipped when its identifier is already in the catalog or
        appeared earlier in the same batch. Order of the remaining books is
        preserved.

        Returns:
            tuple: (new books in fetch order, number of skipped books)
        """
        if not books:
            return [], 0

        existing = self.catalog.existing_identifiers({b.identifier for b in books})
        seen: set[str] = set()
        new_books = []
        skipped = 0
        for book in books:
            if book.identifier in existing or book.identifier in seen:
                skipped += 1
                continue
            seen.add(book.identifier)
            new_books.append(book)

        self.logger.info(
            f"Deduplication: {len(new_books)} new, {skipped} already known"
        )
        return new_books, skipped
