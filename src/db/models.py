"""
SQLAlchemy ORM models for the book catalog and ingestion bookkeeping.

This module defines the database schema using SQLAlchemy's declarative base.
All models inherit from Base and use consistent naming conventions.

Models:
    Book: Catalog record, ingested or manually curated
    IngestionLog: One row per non-dry-run ingestion job
    FilterDecisionLog: Audit row per filter evaluation, linked to a job
    IngestionConfigEntry: Key/JSON settings (filter configuration)
    IngestionState: Resumable paging and pause flag per source
    TimestampMixin: Provides automatic created_at/updated_at timestamps
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.sql import func

from src.ingestion.records import FilterResult, JobStatus

Base = declarative_base()

UNCATEGORIZED = "Uncategorized"


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)

    Both fields use database-level defaults (func.now()) for consistency.
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Book(Base, TimestampMixin):
    """
    Catalog record for a book.

    Attributes:
        id: Primary key (UUID7 format)
        title, author: Required bibliographic fields
        published_year: First 4-digit year found in the source date
        language: First language reported by the source
        description: Plain-text description (HTML stripped)
        source: Source name ("internet_archive"), null for manually curated books
        source_identifier: Source item id, unique when non-null
        pdf_url: URL of the stored PDF
        genres: JSON list of 1-3 taxonomy genres, null when unclassified
        subgenre: Optional taxonomy sub-genre
        category: Derived from genres[0], "Uncategorized" when no genres
    """

    __tablename__ = "books"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    published_year = Column(Integer, nullable=True)
    language = Column(String, nullable=True)
    description = Column(Text, nullable=True)

    # Provenance, null for manually curated records
    source = Column(String, nullable=True)
    source_identifier = Column(String, nullable=True, unique=True, index=True)
    pdf_url = Column(String, nullable=True)

    # Classification
    genres = Column(JSON, nullable=True)
    subgenre = Column(String, nullable=True)
    category = Column(
        String, nullable=False, default=UNCATEGORIZED, server_default=UNCATEGORIZED
    )

    def __repr__(self):
        return (
            f"<Book(id={self.id}, source_identifier={self.source_identifier}, "
            f"title='{self.title}', category='{self.category}')>"
        )


class IngestionLog(Base):
    """Job log row. Counts mirror JobResult; errors are stored as JSON."""

    __tablename__ = "ingestion_logs"

    id = Column(String, primary_key=True)
    source = Column(String, nullable=False)
    job_type = Column(String, nullable=False, default="manual")
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.RUNNING)
    page = Column(Integer, nullable=True)
    started_at = Column(DateTime, nullable=False, server_default=func.now())
    completed_at = Column(DateTime, nullable=True)

    books_processed = Column(Integer, nullable=False, default=0)
    books_added = Column(Integer, nullable=False, default=0)
    books_skipped = Column(Integer, nullable=False, default=0)
    books_filtered = Column(Integer, nullable=False, default=0)
    books_filtered_by_genre = Column(Integer, nullable=False, default=0)
    books_filtered_by_author = Column(Integer, nullable=False, default=0)
    books_failed = Column(Integer, nullable=False, default=0)
    error_details = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<IngestionLog(id={self.id}, status={self.status}, started_at={self.started_at})>"


class FilterDecisionLog(Base):
    __tablename__ = "ingestion_filter_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(
        String, ForeignKey("ingestion_logs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    book_identifier = Column(String, nullable=False)
    book_title = Column(String, nullable=True)
    book_author = Column(String, nullable=True)
    book_genres = Column(JSON, nullable=True)
    filter_result = Column(Enum(FilterResult), nullable=False)
    filter_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class IngestionConfigEntry(Base, TimestampMixin):
    __tablename__ = "ingestion_config"

    config_key = Column(String, primary_key=True)
    config_value = Column(JSON, nullable=False)


class IngestionState(Base, TimestampMixin):
    """Per-source continuation state for scheduled runs."""

    __tablename__ = "ingestion_state"

    source = Column(String, primary_key=True)
    last_page = Column(Integer, nullable=False, default=1)
    total_ingested = Column(Integer, nullable=False, default=0)
    last_run_at = Column(DateTime, nullable=True)
    last_run_status = Column(String, nullable=False, default="idle")
    last_run_added = Column(Integer, nullable=False, default=0)
    last_run_skipped = Column(Integer, nullable=False, default=0)
    last_run_failed = Column(Integer, nullable=False, default=0)
    is_paused = Column(Boolean, nullable=False, default=False)
    paused_at = Column(DateTime, nullable=True)
    paused_by = Column(String, nullable=True)
