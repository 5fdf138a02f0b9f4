"""
Transient records passed between ingestion stages.

BookMetadata and GenreClassification live for one run; FilterDecision entries
are audit records; JobResult is the per-run summary persisted in the job log.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_year(date: Optional[str]) -> Optional[int]:
    """First 4-digit run of an archive date string ("c. 1850-1855" -> 1850)."""
    if not date:
        return None
    match = re.search(r"\d{4}", date)
    return int(match.group(0)) if match else None


class JobStatus(str, PyEnum):
    """Lifecycle of an ingestion job as stored in the job log."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class FilterResult(str, PyEnum):
    """Outcome of one filter evaluation."""

    PASSED = "passed"
    FILTERED_GENRE = "filtered_genre"
    FILTERED_AUTHOR = "filtered_author"


@dataclass(frozen=True)
class BookMetadata:
    """Normalized archive record. Immutable once parsed."""

    identifier: str
    title: str
    creator: str
    date: Optional[str] = None
    language: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class GenreClassification:
    """1-3 taxonomy genres plus an optional sub-genre."""

    genres: tuple[str, ...]
    subgenre: Optional[str] = None


@dataclass(frozen=True)
class FilterCandidate:
    identifier: str
    title: str
    author: Optional[str]
    genres: Optional[tuple[str, ...]]


@dataclass(frozen=True)
class FilterDecision:
    """Append-only audit entry, one per filter evaluation."""

    identifier: str
    title: str
    author: Optional[str]
    genres: tuple[str, ...]
    result: FilterResult
    reason: str
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def passed(self) -> bool:
        return self.result == FilterResult.PASSED


@dataclass
class JobError:
    identifier: str
    error: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, str]:
        return {
            "identifier": self.identifier,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class JobResult:
    """
    Summary of one ingestion run.

    processed counts every fetched candidate, duplicates included, so that
    added + skipped + filtered + failed == processed always holds.
    evaluated counts the candidates that went through per-book processing.
    """

    job_id: str
    started_at: datetime = field(default_factory=utcnow)
    status: JobStatus = JobStatus.COMPLETED
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    page: int = 1
    processed: int = 0
    evaluated: int = 0
    added: int = 0
    skipped: int = 0
    filtered: int = 0
    filtered_by_genre: int = 0
    filtered_by_author: int = 0
    failed: int = 0
    errors: list[JobError] = field(default_factory=list)

    def record_error(self, identifier: str, error: str) -> None:
        self.errors.append(JobError(identifier=identifier, error=error))

    def finalize_status(self) -> JobStatus:
        if self.failed > 0 and self.added > 0:
            self.status = JobStatus.PARTIAL
        elif self.failed > 0 and self.processed > 0:
            self.status = JobStatus.FAILED
        else:
            self.status = JobStatus.COMPLETED
        return self.status

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = (
            self.completed_at.isoformat() if self.completed_at else None
        )
        data["errors"] = [e.to_dict() for e in self.errors]
        return data
