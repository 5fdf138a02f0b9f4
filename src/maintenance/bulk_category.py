"""
Bulk category maintenance.

Recomputes the derived category of every stored book from its genres. Used
after the taxonomy or the derivation rule changes, and to backfill records
created before genres were classified.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from src.db import CatalogWriter, derive_category
from src.logger import log_function


PROGRESS_EVERY = 100


class CategoryStore(Protocol):
    def list_category_inputs(self) -> list[tuple[str, Optional[list]]]: ...

    def update_category(self, book_id: str, category: str) -> bool: ...


@dataclass
class BulkUpdateResult:
    updated: int = 0
    errors: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.updated + self.errors

    def record_error(self, book_id: Optional[str], error: str) -> None:
        self.errors += 1
        self.details.append({"book_id": book_id, "error": error})


class BulkCategoryMaintainer:
    def __init__(self, catalog: Optional[CategoryStore] = None):
        self.catalog = catalog or CatalogWriter()
        self.logger = logging.getLogger("maintenance")

    @log_function(logger_name="maintenance", log_execution_time=True)
    def update_all_categories(self) -> BulkUpdateResult:
        """
        Recompute the category of every stored book.

        Each record is attempted exactly once. A failing record is counted in
        `errors` with a `{book_id, error}` detail and the run moves on, so
        `updated + errors` always equals the number of records listed.

        Returns:
            BulkUpdateResult: Counts and per-record error details. If the
            records cannot be listed at all, errors=1 with book_id None.
        """
        result = BulkUpdateResult()
        try:
            rows = self.catalog.list_category_inputs()
        except Exception as e:
            self.logger.error(f"Failed to list books for category update: {e}")
            result.record_error(None, f"Failed to list books: {e}")
            return result

        total = len(rows)
        self.logger.info(f"Updating categories for {total} books")

        for index, (book_id, genres) in enumerate(rows, start=1):
            try:
                category = derive_category(genres)
                if self.catalog.update_category(book_id, category):
                    result.updated += 1
                else:
                    result.record_error(book_id, "Book not found")
            except Exception as e:
                self.logger.warning(f"Category update failed for {book_id}: {e}")
                result.record_error(book_id, str(e))

            if index % PROGRESS_EVERY == 0:
                self.logger.info(f"Progress: {index}/{total} books processed")

        self.logger.info(
            f"Category update finished: {result.updated} updated, {result.errors} errors"
        )
        return result
