"""
Ingestion orchestrator.

One run processes one page of the archive:

    fetch -> deduplicate -> for each new book, in fetch order:
        classify -> filter -> (dry run: count as added)
                           -> download + validate -> upload -> insert

Filtering always happens before any download. Per-book failures are
recorded and the run continues; only a failed fetch or duplicate lookup
fails the whole run.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests
import uuid_utils as uuid
from bs4 import BeautifulSoup
from sqlalchemy.exc import SQLAlchemyError

from src.classification import GenreClassifier
from src.db import (
    CatalogRecord,
    CatalogWriter,
    configure_database,
    get_ingestion_state,
    init_database,
    load_filter_config,
    record_run,
)
from src.filters import (
    AuditSink,
    CompositeAuditSink,
    DatabaseAuditSink,
    FilterConfig,
    FilterEngine,
    LoggingAuditSink,
    get_filter_summary,
)
from src.ingestion import (
    BookMetadata,
    FilterCandidate,
    FilterResult,
    GenreClassification,
    IngestionError,
    IngestionSettings,
    JobResult,
    JobStatus,
)
from src.ingestion.deduplicator import Deduplicator
from src.ingestion.fetchers import BookFetcher, InternetArchiveFetcher
from src.ingestion.pdf_validator import PdfValidator, sanitize_filename
from src.ingestion.rate_limiter import RateLimitedClient
from src.ingestion.records import parse_year, utcnow
from src.logger import log_function
from src.storage import CloudStorage, LocalStorage, StorageUploader


JOB_TYPES = ("manual", "scheduled")

# Per-book outcomes
ADDED = "added"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class IngestionOptions:
    batch_size: int = 30
    page: int = 1
    dry_run: bool = False
    delay_between_books_ms: int = 1000
    job_type: str = "manual"

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.page < 1:
            raise ValueError("page must be at least 1")
        if self.delay_between_books_ms < 0:
            raise ValueError("delay_between_books_ms must be non-negative")
        if self.job_type not in JOB_TYPES:
            raise ValueError(f"job_type must be one of {', '.join(JOB_TYPES)}")


@dataclass(frozen=True)
class BookOutcome:
    status: str  # ADDED, SKIPPED, FAILED or a FilterResult value
    error: Optional[str] = None


def clean_description(description: Optional[str]) -> Optional[str]:
    """Strip HTML markup and collapse whitespace."""
    if not description:
        return None
    text = BeautifulSoup(description, "html.parser").get_text(" ")
    text = re.sub(r"\s+", " ", text).strip()
    return text or None


def build_catalog_record(
    book: BookMetadata,
    pdf_url: str,
    classification: Optional[GenreClassification],
) -> CatalogRecord:
    return CatalogRecord(
        title=book.title,
        author=book.creator,
        source_identifier=book.identifier,
        pdf_url=pdf_url,
        published_year=parse_year(book.date),
        language=book.language,
        description=clean_description(book.description),
        genres=classification.genres if classification else None,
        subgenre=classification.subgenre if classification else None,
    )


class IngestionOrchestrator:
    """
    Runs ingestion jobs with injected collaborators.

    Classifications are cached per orchestrator instance, so a book that is
    filtered out in one run is not sent to the model again in the next run
    of the same instance.
    """

    def __init__(
        self,
        fetcher: BookFetcher,
        catalog: CatalogWriter,
        classifier: GenreClassifier,
        filter_config: FilterConfig,
        pdf_validator: Optional[PdfValidator] = None,
        uploader: Optional[StorageUploader] = None,
        deduplicator: Optional[Deduplicator] = None,
        audit_sink: Optional[AuditSink] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.fetcher = fetcher
        self.catalog = catalog
        self.classifier = classifier
        self.filter_config = filter_config
        self.pdf_validator = pdf_validator
        self.uploader = uploader
        self.deduplicator = deduplicator or Deduplicator(catalog)
        self.audit_sink = audit_sink
        self._sleep = sleep
        self._classifications: dict[str, GenreClassification] = {}
        self.logger = logging.getLogger("pipeline")

    def _build_audit_sink(self, job_log_id: Optional[str], dry_run: bool) -> AuditSink:
        sinks: list[AuditSink] = [LoggingAuditSink()]
        session_factory = getattr(self.catalog, "session_factory", None)
        if not dry_run and job_log_id and session_factory is not None:
            sinks.append(DatabaseAuditSink(job_log_id, session_factory))
        if self.audit_sink is not None:
            sinks.append(self.audit_sink)
        return CompositeAuditSink(*sinks)

    def _classify(self, book: BookMetadata) -> Optional[GenreClassification]:
        cached = self._classifications.get(book.identifier)
        if cached is not None:
            return cached

        try:
            stored = self.catalog.get_classification(book.identifier)
        except SQLAlchemyError as e:
            self.logger.warning(f"Stored genres lookup failed for {book.identifier}: {e}")
            stored = None
        classification = stored or self.classifier.classify(book)
        if classification is not None:
            self._classifications[book.identifier] = classification
        return classification

    def _process_book(
        self, book: BookMetadata, engine: FilterEngine, dry_run: bool
    ) -> BookOutcome:
        identifier = book.identifier
        self.logger.info(f"Processing book: {book.title} ({identifier})")

        classification = self._classify(book)
        decision = engine.evaluate(
            FilterCandidate(
                identifier=identifier,
                title=book.title,
                author=book.creator,
                genres=classification.genres if classification else None,
            )
        )
        if not decision.passed:
            return BookOutcome(decision.result.value)

        if dry_run:
            self.logger.info(f"[DRY RUN] Would download and process: {identifier}")
            return BookOutcome(ADDED)

        try:
            pdf_url = self.fetcher.build_download_url(identifier)
            pdf = self.pdf_validator.download(pdf_url)
            stored_url = self.uploader.upload(pdf.buffer, sanitize_filename(identifier))
        except IngestionError as e:
            self.logger.error(f"Failed to store PDF for {identifier}: {e}")
            return BookOutcome(FAILED, str(e))

        insert = self.catalog.insert(build_catalog_record(book, stored_url, classification))
        if insert.duplicate:
            self.logger.info(f"Already in catalog at insert time: {identifier}")
            return BookOutcome(SKIPPED)
        if not insert.success:
            return BookOutcome(FAILED, insert.error)

        self.logger.info(f"Added book: {book.title} (ID: {insert.id})")
        return BookOutcome(ADDED)

    def run(self, options: Optional[IngestionOptions] = None) -> JobResult:
        """
        Execute one ingestion job.

        Returns:
            JobResult: Counts satisfy added + skipped + filtered + failed == processed.
        """
        options = options or IngestionOptions()
        result = JobResult(
            job_id=str(uuid.uuid7()), dry_run=options.dry_run, page=options.page
        )
        self.logger.info(
            f"Starting ingestion job {result.job_id}: batch_size={options.batch_size}, "
            f"page={options.page}, dry_run={options.dry_run}"
        )
        self.logger.info(get_filter_summary(self.filter_config))

        job_log_id = None
        if not options.dry_run:
            try:
                job_log_id = self.catalog.create_job_log(options.job_type, options.page)
            except SQLAlchemyError as e:
                self.logger.error(f"Failed to create job log, continuing without: {e}")

        engine = FilterEngine(
            self.filter_config, self._build_audit_sink(job_log_id, options.dry_run)
        )

        try:
            books = self.fetcher.fetch_batch(options.page, options.batch_size)
            new_books, skipped = self.deduplicator.filter_new(books)
        except (requests.RequestException, IngestionError, SQLAlchemyError) as e:
            self.logger.error(f"Ingestion job failed before processing: {e}")
            return self._fail_job(result, job_log_id, str(e))
        except Exception as e:
            self.logger.error(f"Critical error before processing: {e}", exc_info=True)
            return self._fail_job(result, job_log_id, str(e))

        result.processed = len(books)
        result.skipped = skipped
        self.logger.info(f"{len(new_books)} new books to process, {skipped} duplicates skipped")

        for index, book in enumerate(new_books):
            result.evaluated += 1
            try:
                outcome = self._process_book(book, engine, options.dry_run)
            except Exception as e:
                self.logger.error(f"Error processing {book.identifier}: {e}", exc_info=True)
                outcome = BookOutcome(FAILED, str(e))

            if outcome.status == ADDED:
                result.added += 1
            elif outcome.status == SKIPPED:
                result.skipped += 1
            elif outcome.status == FilterResult.FILTERED_GENRE.value:
                result.filtered += 1
                result.filtered_by_genre += 1
            elif outcome.status == FilterResult.FILTERED_AUTHOR.value:
                result.filtered += 1
                result.filtered_by_author += 1
            else:
                result.failed += 1
                result.record_error(book.identifier, outcome.error or "Unknown error")

            is_last = index == len(new_books) - 1
            if not options.dry_run and options.delay_between_books_ms > 0 and not is_last:
                self._sleep(options.delay_between_books_ms / 1000)

        result.finalize_status()
        return self._finish(result, job_log_id)

    def _fail_job(
        self, result: JobResult, job_log_id: Optional[str], error: str
    ) -> JobResult:
        result.record_error("job", error)
        result.status = JobStatus.FAILED
        return self._finish(result, job_log_id)

    def _finish(self, result: JobResult, job_log_id: Optional[str]) -> JobResult:
        result.completed_at = utcnow()
        if job_log_id:
            self.catalog.log_job_result(job_log_id, result)
        self.logger.info(
            f"Job {result.job_id} {result.status.value}: processed={result.processed}, "
            f"added={result.added}, skipped={result.skipped}, filtered={result.filtered}, "
            f"failed={result.failed}"
        )
        return result


def build_storage(settings: IngestionSettings):
    if settings.storage_backend == "cloud":
        return CloudStorage()
    return LocalStorage(settings.local_storage_dir)


@log_function(logger_name="pipeline", log_execution_time=True)
def run_ingestion_job(
    settings: Optional[IngestionSettings] = None,
    batch_size: Optional[int] = None,
    page: Optional[int] = None,
    resume: bool = False,
    dry_run: bool = False,
    job_type: str = "manual",
    filter_config: Optional[FilterConfig] = None,
) -> Optional[JobResult]:
    """
    Wire default components from settings and run one job.

    Args:
        settings: Deployment settings (default: from environment).
        batch_size: Books per page (default: settings.fetcher.batch_size).
        page: Page to fetch (default: 1, ignored with resume).
        resume: Start from the page stored in the ingestion state.
        dry_run: Classify and filter only; nothing is written.
        job_type: "manual" or "scheduled".
        filter_config: Overrides the stored or environment filter configuration.

    Returns:
        JobResult, or None when ingestion is paused for the source.
    """
    logger = logging.getLogger("pipeline")
    settings = settings or IngestionSettings.from_env()

    configure_database(settings.database_url)
    init_database()

    state = get_ingestion_state(settings.source_name, create=not dry_run)
    if state["is_paused"] and not dry_run:
        logger.warning(
            f"Ingestion is paused for {settings.source_name} "
            f"(by {state['paused_by']} at {state['paused_at']})"
        )
        return None

    start_page = state["last_page"] if resume else (page or 1)
    options = IngestionOptions(
        batch_size=batch_size or settings.fetcher.batch_size,
        page=start_page,
        dry_run=dry_run,
        delay_between_books_ms=settings.delay_between_books_ms,
        job_type=job_type,
    )

    client = RateLimitedClient(settings.fetcher)
    catalog = CatalogWriter(source_name=settings.source_name)
    orchestrator = IngestionOrchestrator(
        fetcher=InternetArchiveFetcher(client),
        catalog=catalog,
        classifier=GenreClassifier(),
        filter_config=filter_config or load_filter_config(),
        pdf_validator=PdfValidator(client),
        uploader=StorageUploader(build_storage(settings), settings.source_name),
    )
    result = orchestrator.run(options)

    if not dry_run:
        # A run that never got a page keeps the same page for the next attempt
        fetched = result.status != JobStatus.FAILED or result.processed > 0
        record_run(
            settings.source_name,
            result,
            next_page=start_page + 1 if fetched else start_page,
        )
    return result
