"""
Catalog persistence for ingested books and the ingestion job log.

CatalogWriter is the only component that writes to the books table during
ingestion. It inserts and never updates: the unique constraint on
source_identifier turns a concurrent duplicate into a failed insert, and
manually curated records (source fields null) are never touched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

import uuid_utils as uuid
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.ingestion.records import GenreClassification, JobResult, JobStatus, utcnow
from .database import get_db_session
from .models import UNCATEGORIZED, Book, IngestionLog


DUPLICATE_ERROR = "Book already exists (duplicate source_identifier)"
REQUIRED_FIELDS = ("title", "author", "source_identifier", "pdf_url")


def derive_category(genres: Optional[Sequence[str]]) -> str:
    """Category is the first genre, or "Uncategorized" when there is none."""
    if genres and isinstance(genres[0], str) and genres[0]:
        return genres[0]
    return UNCATEGORIZED


@dataclass(frozen=True)
class CatalogRecord:
    title: str
    author: str
    source_identifier: str
    pdf_url: str
    published_year: Optional[int] = None
    language: Optional[str] = None
    description: Optional[str] = None
    genres: Optional[tuple[str, ...]] = None
    subgenre: Optional[str] = None


@dataclass(frozen=True)
class InsertResult:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
    duplicate: bool = False


class CatalogWriter:
    def __init__(
        self,
        session_factory: Callable = get_db_session,
        source_name: str = "internet_archive",
    ):
        self.session_factory = session_factory
        self.source_name = source_name
        self.logger = logging.getLogger("catalog")

    # Lookups

    def exists(self, source_identifier: str) -> bool:
        with self.session_factory() as session:
            return (
                session.query(Book.id)
                .filter(Book.source_identifier == source_identifier)
                .first()
                is not None
            )

    def existing_identifiers(self, identifiers: Iterable[str]) -> set[str]:
        """Subset of identifiers already in the catalog, in one query."""
        identifiers = list(set(identifiers))
        if not identifiers:
            return set()
        with self.session_factory() as session:
            rows = (
                session.query(Book.source_identifier)
                .filter(Book.source_identifier.in_(identifiers))
                .all()
            )
            return {row[0] for row in rows}

    def get_classification(self, source_identifier: str) -> Optional[GenreClassification]:
        """Stored genres for an identifier, or None if absent or unclassified."""
        with self.session_factory() as session:
            book = (
                session.query(Book.genres, Book.subgenre)
                .filter(Book.source_identifier == source_identifier)
                .first()
            )
            if book is None or not book.genres:
                return None
            return GenreClassification(genres=tuple(book.genres), subgenre=book.subgenre)

    # Writes

    def insert(self, record: CatalogRecord) -> InsertResult:
        """
        Insert a new catalog record.

        Returns:
            InsertResult: success with the new id, or failure with a reason.
            A unique-constraint violation is reported with duplicate=True.
        """
        for name in REQUIRED_FIELDS:
            value = getattr(record, name, None)
            if not isinstance(value, str) or not value.strip():
                return InsertResult(
                    success=False, error=f"Invalid book data: {name} is required"
                )

        book_id = str(uuid.uuid7())
        genres = list(record.genres) if record.genres else None
        book = Book(
            id=book_id,
            title=record.title.strip(),
            author=record.author.strip(),
            published_year=record.published_year,
            language=record.language,
            description=record.description,
            source=self.source_name,
            source_identifier=record.source_identifier,
            pdf_url=record.pdf_url,
            genres=genres,
            subgenre=record.subgenre,
            category=derive_category(genres),
        )

        try:
            with self.session_factory() as session:
                session.add(book)
                session.commit()
        except IntegrityError:
            self.logger.info(f"Book already exists: {record.source_identifier}")
            return InsertResult(success=False, error=DUPLICATE_ERROR, duplicate=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Insert failed for {record.source_identifier}: {e}")
            return InsertResult(success=False, error=str(e))

        self.logger.info(f"Inserted book {book_id} ({record.source_identifier})")
        return InsertResult(success=True, id=book_id)

    def list_category_inputs(self) -> list[tuple[str, Optional[list]]]:
        """(id, genres) for every stored book, in a stable order."""
        with self.session_factory() as session:
            rows = session.query(Book.id, Book.genres).order_by(Book.id).all()
            return [(row.id, row.genres) for row in rows]

    def update_category(self, book_id: str, category: str) -> bool:
        """Set the category of one book. Returns False if the book is gone."""
        with self.session_factory() as session:
            updated = (
                session.query(Book)
                .filter(Book.id == book_id)
                .update({"category": category}, synchronize_session=False)
            )
            session.commit()
            return updated > 0

    # Job log

    def create_job_log(self, job_type: str = "manual", page: Optional[int] = None) -> str:
        job_id = str(uuid.uuid7())
        with self.session_factory() as session:
            session.add(
                IngestionLog(
                    id=job_id,
                    source=self.source_name,
                    job_type=job_type,
                    status=JobStatus.RUNNING,
                    page=page,
                    started_at=utcnow(),
                )
            )
            session.commit()
        self.logger.info(f"Created job log {job_id} ({job_type})")
        return job_id

    def log_job_result(self, job_log_id: str, result: JobResult) -> bool:
        try:
            with self.session_factory() as session:
                updated = (
                    session.query(IngestionLog)
                    .filter(IngestionLog.id == job_log_id)
                    .update(
                        {
                            "status": result.status,
                            "completed_at": result.completed_at or utcnow(),
                            "books_processed": result.processed,
                            "books_added": result.added,
                            "books_skipped": result.skipped,
                            "books_filtered": result.filtered,
                            "books_filtered_by_genre": result.filtered_by_genre,
                            "books_filtered_by_author": result.filtered_by_author,
                            "books_failed": result.failed,
                            "error_details": [e.to_dict() for e in result.errors]
                            or None,
                        },
                        synchronize_session=False,
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to log job result {job_log_id}: {e}")
            return False

        self.logger.info(
            f"Job {job_log_id} {result.status.value}: processed={result.processed}, "
            f"added={result.added}, skipped={result.skipped}, "
            f"filtered={result.filtered}, failed={result.failed}"
        )
        return updated > 0

    def get_recent_job_logs(self, limit: int = 10) -> list[dict[str, Any]]:
        with self.session_factory() as session:
            logs = (
                session.query(IngestionLog)
                .order_by(IngestionLog.started_at.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "id": log.id,
                    "source": log.source,
                    "job_type": log.job_type,
                    "status": log.status.value,
                    "page": log.page,
                    "started_at": log.started_at,
                    "completed_at": log.completed_at,
                    "books_processed": log.books_processed,
                    "books_added": log.books_added,
                    "books_skipped": log.books_skipped,
                    "books_filtered": log.books_filtered,
                    "books_failed": log.books_failed,
                    "error_details": log.error_details,
                }
                for log in logs
            ]
