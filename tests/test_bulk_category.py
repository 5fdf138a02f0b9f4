import logging

import pytest

from src.db import Book, CatalogRecord, CatalogWriter, get_db_session
from src.maintenance import BulkCategoryMaintainer


class FlakyStore:
    """Category store failing on a chosen subset of book ids."""

    def __init__(self, rows, failing=(), missing=()):
        self.rows = rows
        self.failing = set(failing)
        self.missing = set(missing)
        self.attempts = []

    def list_category_inputs(self):
        return list(self.rows)

    def update_category(self, book_id, category):
        self.attempts.append(book_id)
        if book_id in self.failing:
            raise RuntimeError(f"write failed for {book_id}")
        return book_id not in self.missing


class BrokenStore:
    def list_category_inputs(self):
        raise RuntimeError("connection refused")

    def update_category(self, book_id, category):
        raise AssertionError("must not be called")


def rows(count):
    return [(f"book-{i}", ["History"] if i % 2 else None) for i in range(count)]


@pytest.mark.parametrize("failure_share", [0.0, 0.1, 0.5, 1.0])
def test_every_record_is_attempted_once(failure_share):
    data = rows(40)
    failing = [book_id for book_id, _ in data[: int(len(data) * failure_share)]]
    store = FlakyStore(data, failing=failing)

    result = BulkCategoryMaintainer(store).update_all_categories()

    assert store.attempts == [book_id for book_id, _ in data]
    assert result.updated + result.errors == len(data)
    assert result.errors == len(failing)
    assert [d["book_id"] for d in result.details] == failing


def test_missing_record_is_counted_as_error():
    store = FlakyStore(rows(3), missing=["book-1"])

    result = BulkCategoryMaintainer(store).update_all_categories()

    assert result.updated == 2
    assert result.details == [{"book_id": "book-1", "error": "Book not found"}]


def test_listing_failure_returns_single_error():
    result = BulkCategoryMaintainer(BrokenStore()).update_all_categories()

    assert result.updated == 0
    assert result.errors == 1
    assert result.details[0]["book_id"] is None
    assert "connection refused" in result.details[0]["error"]


def test_progress_is_logged_every_hundred_records(caplog):
    store = FlakyStore(rows(250))

    with caplog.at_level(logging.INFO, logger="maintenance"):
        BulkCategoryMaintainer(store).update_all_categories()

    progress = [r.message for r in caplog.records if r.message.startswith("Progress:")]
    assert progress == ["Progress: 100/250 books processed", "Progress: 200/250 books processed"]


def test_categories_are_recomputed_in_the_catalog(database):
    catalog = CatalogWriter()
    first = catalog.insert(
        CatalogRecord(
            title="Histories",
            author="Herodotus",
            source_identifier="histories",
            pdf_url="https://books.example.com/histories.pdf",
            genres=("History", "Geography"),
        )
    ).id
    with get_db_session() as session:
        session.get(Book, first).category = "Stale"
        session.add(Book(id="manual-1", title="Curated", author="Librarian", genres=None))
        session.commit()

    result = BulkCategoryMaintainer(catalog).update_all_categories()

    assert result.updated == 2
    assert result.errors == 0
    with get_db_session() as session:
        assert session.get(Book, first).category == "History"
        assert session.get(Book, "manual-1").category == "Uncategorized"
