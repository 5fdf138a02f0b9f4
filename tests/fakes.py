"""Hand-written fakes shared by the test modules."""

from __future__ import annotations

from typing import Any, Iterable, Optional

import requests

from src.db import InsertResult
from src.ingestion import BookMetadata, GenreClassification
from src.ingestion.exceptions import PdfValidationError, StorageUploadError
from src.ingestion.pdf_validator import DownloadedPdf


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: Optional[dict[str, str]] = None,
        json_data: Any = None,
        chunk_size: int = 4,
    ) -> None:
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self._json = json_data
        self._chunk_size = chunk_size
        self.closed = False

    def json(self) -> Any:
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1) -> Iterable[bytes]:
        for start in range(0, len(self._body), self._chunk_size):
            yield self._body[start : start + self._chunk_size]

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class ScriptedSession:
    """Session whose get() replays a script of responses or exceptions."""

    def __init__(self, *script: Any) -> None:
        self.script = list(script)
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if not self.script:
            raise AssertionError(f"unexpected request to {url}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def book(identifier: str, title: str = "A Book", creator: str = "Some Author", **extra: Any) -> BookMetadata:
    return BookMetadata(identifier=identifier, title=title, creator=creator, **extra)


class FakeFetcher:
    source_name = "internet_archive"

    def __init__(self, books: Optional[list[BookMetadata]] = None, error: Optional[Exception] = None) -> None:
        self.books = books or []
        self.error = error
        self.calls: list[tuple[int, int]] = []

    def fetch_batch(self, page: int = 1, batch_size: Optional[int] = None) -> list[BookMetadata]:
        self.calls.append((page, batch_size))
        if self.error is not None:
            raise self.error
        return list(self.books)

    def build_download_url(self, identifier: str) -> str:
        return f"https://archive.org/download/{identifier}/{identifier}.pdf"

    def parse_record(self, doc):
        raise NotImplementedError


class FakeCatalog:
    """In-memory catalog with the CatalogWriter surface used by the orchestrator."""

    def __init__(self, existing: Iterable[str] = ()) -> None:
        self.records: dict[str, Any] = {identifier: None for identifier in existing}
        self.job_logs: dict[str, Any] = {}
        self.insert_errors: dict[str, InsertResult] = {}
        self.lookup_error: Optional[Exception] = None
        self.classifications: dict[str, GenreClassification] = {}

    def exists(self, identifier: str) -> bool:
        return identifier in self.records

    def existing_identifiers(self, identifiers: Iterable[str]) -> set[str]:
        if self.lookup_error is not None:
            raise self.lookup_error
        return {i for i in identifiers if i in self.records}

    def get_classification(self, identifier: str) -> Optional[GenreClassification]:
        return self.classifications.get(identifier)

    def insert(self, record) -> InsertResult:
        if record.source_identifier in self.insert_errors:
            return self.insert_errors[record.source_identifier]
        self.records[record.source_identifier] = record
        return InsertResult(success=True, id=f"id-{record.source_identifier}")

    def create_job_log(self, job_type: str = "manual", page: Optional[int] = None) -> str:
        job_id = f"job-{len(self.job_logs) + 1}"
        self.job_logs[job_id] = None
        return job_id

    def log_job_result(self, job_log_id: str, result) -> bool:
        self.job_logs[job_log_id] = result
        return True


class FakeClassifier:
    def __init__(self, genres_by_identifier: Optional[dict[str, tuple[str, ...]]] = None) -> None:
        self.genres_by_identifier = genres_by_identifier or {}
        self.calls: list[str] = []

    def classify(self, book: BookMetadata) -> Optional[GenreClassification]:
        self.calls.append(book.identifier)
        genres = self.genres_by_identifier.get(book.identifier)
        return GenreClassification(genres=genres) if genres else None


class FakePdfValidator:
    def __init__(self, failures: Optional[dict[str, str]] = None) -> None:
        self.failures = failures or {}
        self.downloads: list[str] = []

    def download(self, url: str) -> DownloadedPdf:
        self.downloads.append(url)
        for identifier, reason in self.failures.items():
            if f"/{identifier}/" in url:
                raise PdfValidationError(reason)
        return DownloadedPdf(buffer=b"%PDF-1.4 fake", size=13)


class FakeUploader:
    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.fail_for = set(fail_for)
        self.uploads: list[str] = []

    def upload(self, buffer: bytes, sanitized_filename: str) -> str:
        if sanitized_filename in self.fail_for:
            raise StorageUploadError("Storage upload failed: bucket unavailable")
        self.uploads.append(sanitized_filename)
        return f"https://books.example.com/internet_archive/{sanitized_filename}.pdf"
